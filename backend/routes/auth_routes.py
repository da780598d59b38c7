import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import CurrentUser, get_current_user
from backend.auth.passwords import verify_password
from backend.core import config
from backend.core.validation import normalize_email, read_body
from backend.database import get_db
from backend.models.user import User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    email: Any = None
    password: Any = None


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.JWT_EXPIRES_MINUTES * 60,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite=config.COOKIE_SAMESITE,
    )


@router.post("/login")
def login(response: Response, payload: Any = Body(default=None), db: Session = Depends(get_db)):
    data = read_body(LoginRequest, payload)
    credentials = (data.email, data.password)
    if not all(isinstance(value, str) and value for value in credentials):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password required",
        )

    email = normalize_email(data.email)
    try:
        user = db.query(User).filter(User.email == email).first()
    except SQLAlchemyError as exc:
        logger.exception("Login lookup failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error",
        ) from exc

    if user is None or not verify_password(data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    token = jwt_handler.create_access_token(subject=user.email, role=user.role)
    set_session_cookie(response, token)
    logger.info("User %s logged in as %s", user.email, user.role)

    return {
        "message": "Login successful",
        "user": {"email": user.email, "role": user.role, "name": user.name},
    }


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(
        key=config.SESSION_COOKIE_NAME,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite=config.COOKIE_SAMESITE,
    )
    return {"message": "Logged out"}


@router.get("/me")
def me(current_user: CurrentUser = Depends(get_current_user)):
    return {"email": current_user.email, "role": current_user.role.value}

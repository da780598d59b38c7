from dataclasses import dataclass
from enum import Enum

import jwt
from fastapi import Depends, HTTPException, Request, status

from backend.auth import jwt_handler
from backend.core import config


class Role(str, Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"


@dataclass(frozen=True)
class CurrentUser:
    email: str
    role: Role


def get_current_user(request: Request) -> CurrentUser:
    """Resolve the session cookie to an identity without touching the database."""
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    try:
        role = Role(payload.get("role"))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token role") from exc

    return CurrentUser(email=email, role=role)


def require_role(role: Role):
    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role != role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return current_user

    dependency.__name__ = f"require_{role.value.lower()}"
    return dependency

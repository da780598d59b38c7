import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import CurrentUser, Role, require_role
from backend.auth.passwords import hash_password
from backend.core.validation import normalize_email, read_body
from backend.database import get_db
from backend.models.student import Student
from backend.models.teacher import Teacher
from backend.models.user import User

router = APIRouter(tags=['teacher'])

logger = logging.getLogger(__name__)


class AddStudentRequest(BaseModel):
    name: Any = None
    email: Any = None
    password: Any = None
    subject: Any = None
    roll_num: Any = None


class TeacherProfile(BaseModel):
    name: str | None
    id_code: int
    email: str
    subject: str | None


class TeacherDetailsResponse(BaseModel):
    profile: TeacherProfile


class MessageResponse(BaseModel):
    message: str


def validate_new_student(data: AddStudentRequest) -> AddStudentRequest:
    """Check the registration fields and return them with the email normalized."""
    text_fields = [data.name, data.email, data.password, data.subject]
    roll_num_ok = isinstance(data.roll_num, (str, int)) and not isinstance(data.roll_num, bool)
    if not all(isinstance(value, str) and value for value in text_fields) or not roll_num_ok or not data.roll_num:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='required all fields',
        )

    email = normalize_email(data.email)
    if '@' not in email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid email format',
        )

    return data.model_copy(update={'email': email, 'roll_num': str(data.roll_num)})


def user_exists(db: Session, email: str) -> bool:
    return db.query(User.id).filter(User.email == email).first() is not None


def registered_by_concurrent_request(db: Session, email: str) -> bool:
    try:
        return user_exists(db, email)
    except SQLAlchemyError:
        logger.exception('Duplicate check after failed registration failed')
        return False


@router.get('/teacherDetails', response_model=TeacherDetailsResponse)
def teacher_details(
    current_user: CurrentUser = Depends(require_role(Role.TEACHER)),
    db: Session = Depends(get_db),
):
    try:
        teacher = db.query(Teacher).filter(Teacher.email == current_user.email).first()
    except SQLAlchemyError as exc:
        logger.exception('Teacher details lookup failed')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='server error/dashboard error',
        ) from exc

    if teacher is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Teacher profile not found',
        )

    return TeacherDetailsResponse(
        profile=TeacherProfile(
            name=teacher.name,
            id_code=teacher.id,
            email=teacher.email,
            subject=teacher.subject,
        )
    )


@router.post('/addStudent', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def add_student(
    payload: Any = Body(default=None),
    current_user: CurrentUser = Depends(require_role(Role.TEACHER)),
    db: Session = Depends(get_db),
):
    data = validate_new_student(read_body(AddStudentRequest, payload))

    try:
        already_registered = user_exists(db, data.email)
    except SQLAlchemyError as exc:
        logger.exception('User existence check failed')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Internal server error',
        ) from exc

    if already_registered:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='user already exists',
        )

    password_hash = hash_password(data.password)

    # users and student rows commit together or not at all
    try:
        db.add(User(
            name=data.name,
            email=data.email,
            password_hash=password_hash,
            role=Role.STUDENT.value,
        ))
        db.flush()
        db.add(Student(
            name=data.name,
            email=data.email,
            subject=data.subject,
            roll_num=data.roll_num,
        ))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, IntegrityError) and registered_by_concurrent_request(db, data.email):
            logger.warning('Duplicate registration for %s rejected at commit', data.email)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='user already exists',
            ) from exc
        logger.exception('Student registration transaction failed')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='database error',
        ) from exc

    # registration does not sign the new student in
    logger.info('Teacher %s registered student %s', current_user.email, data.email)
    return MessageResponse(message='register successful')

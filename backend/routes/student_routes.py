import logging
import math
import re
from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import CurrentUser, Role, require_role
from backend.core.validation import read_body
from backend.database import get_db
from backend.models.attendance import Attendance
from backend.models.student import Student

router = APIRouter(tags=['student'])

logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100
STATUS_COLORS = {
    'PRESENT': 'green',
    'ABSENT': 'red',
}
DEFAULT_STATUS_COLOR = 'grey'

_LEADING_INT_PATTERN = re.compile(r'\s*([+-]?\d+)')


class AttendanceCalendarRequest(BaseModel):
    month: Any = None
    year: Any = None


class StudentProfile(BaseModel):
    name: str | None
    id_code: int
    subject: str | None
    roll_no: str | None
    email: str


class StudentDetailsResponse(BaseModel):
    profile: StudentProfile


class ColoredAttendanceRow(BaseModel):
    date: str
    status: str | None
    color: str


class AttendanceSummary(BaseModel):
    totalAttendance: int
    presentAttendance: int
    absentAttendance: int
    presentPercentage: int
    absentPercentage: int


class AttendanceCalendarResponse(BaseModel):
    coloredRows: list[ColoredAttendanceRow]
    attendance: AttendanceSummary


def parse_leading_int(value: Any) -> int | None:
    """Read an integer the way form inputs arrive: ``7``, ``"07"`` or ``"7th"``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT_PATTERN.match(value)
        if match:
            try:
                return int(match.group(1))
            except ValueError:
                # longer than the interpreter will convert
                return None
    return None


def parse_month_year(month: Any, year: Any) -> tuple[int, int]:
    if not month or not year:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Month and year required',
        )

    parsed_month = parse_leading_int(month)
    parsed_year = parse_leading_int(year)
    if (
        parsed_month is None
        or not 1 <= parsed_month <= 12
        or parsed_year is None
        or not MIN_YEAR <= parsed_year <= MAX_YEAR
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid month or year value',
        )

    return parsed_month, parsed_year


def month_bounds(year: int, month: int) -> tuple[date, date]:
    start = date(year, month, 1)
    if month == 12:
        return start, date(year + 1, 1, 1)
    return start, date(year, month + 1, 1)


def status_color(attendance_status: str | None) -> str:
    return STATUS_COLORS.get(attendance_status, DEFAULT_STATUS_COLOR)


def percentage(part: int, total: int) -> int:
    if total == 0:
        return 0
    # round-half-even keeps present + absent from exceeding 100
    return round(part * 100 / total)


def summarize_attendance(statuses: list[str | None]) -> AttendanceSummary:
    total = len(statuses)
    present = sum(1 for attendance_status in statuses if attendance_status == 'PRESENT')
    absent = sum(1 for attendance_status in statuses if attendance_status == 'ABSENT')

    return AttendanceSummary(
        totalAttendance=total,
        presentAttendance=present,
        absentAttendance=absent,
        presentPercentage=percentage(present, total),
        absentPercentage=percentage(absent, total),
    )


def query_monthly_attendance(db: Session, email: str, year: int, month: int) -> list[tuple[date, str | None]]:
    start, end = month_bounds(year, month)

    return db.query(Attendance.date, Attendance.status).join(
        Student, Attendance.student_id == Student.id,
    ).filter(
        Student.email == email,
        Attendance.date >= start,
        Attendance.date < end,
    ).order_by(Attendance.date.desc()).all()


@router.get('/studentDetails', response_model=StudentDetailsResponse)
def student_details(
    current_user: CurrentUser = Depends(require_role(Role.STUDENT)),
    db: Session = Depends(get_db),
):
    try:
        student = db.query(Student).filter(Student.email == current_user.email).first()
    except SQLAlchemyError as exc:
        logger.exception('Student details lookup failed')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    if student is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Student profile not found',
        )

    return StudentDetailsResponse(
        profile=StudentProfile(
            name=student.name,
            id_code=student.id,
            subject=student.subject,
            roll_no=student.roll_num,
            email=student.email,
        )
    )


@router.post('/attendanceCalendar', response_model=AttendanceCalendarResponse)
def attendance_calendar(
    payload: Any = Body(default=None),
    current_user: CurrentUser = Depends(require_role(Role.STUDENT)),
    db: Session = Depends(get_db),
):
    data = read_body(AttendanceCalendarRequest, payload)
    month, year = parse_month_year(data.month, data.year)

    try:
        rows = query_monthly_attendance(db, current_user.email, year, month)
    except SQLAlchemyError as exc:
        logger.exception('Attendance calendar query failed')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    colored_rows = [
        ColoredAttendanceRow(
            date=attendance_date.isoformat(),
            status=attendance_status,
            color=status_color(attendance_status),
        )
        for attendance_date, attendance_status in rows
    ]

    return AttendanceCalendarResponse(
        coloredRows=colored_rows,
        attendance=summarize_attendance([attendance_status for _, attendance_status in rows]),
    )

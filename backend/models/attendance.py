"""Attendance model definitions."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String
from backend.database import Base


class Attendance(Base):
    """Represents one day's attendance mark for a student."""
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("student.id"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String)  # PRESENT/ABSENT/...

"""Student model definitions."""

from sqlalchemy import Column, Integer, String
from backend.database import Base


class Student(Base):
    """Represents a student profile, linked to ``users`` by email."""
    __tablename__ = "student"

    id = Column(Integer, primary_key=True)
    name = Column(String)
    email = Column(String, index=True)
    subject = Column(String)
    roll_num = Column(String)

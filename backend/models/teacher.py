"""Teacher model definitions."""

from sqlalchemy import Column, Integer, String
from backend.database import Base


class Teacher(Base):
    """Represents a teacher profile, linked to ``users`` by email."""
    __tablename__ = "teacher"

    id = Column(Integer, primary_key=True)
    name = Column(String)
    email = Column(String, index=True)
    subject = Column(String)

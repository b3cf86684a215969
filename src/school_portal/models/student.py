"""Student database model.

This module defines the Student database model using SQLAlchemy.
"""

from sqlalchemy import Boolean, Column, String

from .base import Base
from .identity import IdentityColumns


class StudentModel(IdentityColumns, Base):
    """Student database model."""

    __tablename__ = "students"

    class_name = Column(String, nullable=False)
    division = Column(String, nullable=False)
    parent_name = Column(String, nullable=False)
    place = Column(String, nullable=False)
    roll_number = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    email_sent = Column(Boolean, nullable=False, default=False)

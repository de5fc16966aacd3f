"""Profile model."""
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import func

from cambio.database import Base
from cambio.models.base import enum_column, generate_id


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Profile(Base):
    """A person known to the identity provider, customer or staff."""

    __tablename__ = "profiles"

    id = Column(String, primary_key=True, default=lambda: generate_id("user"))
    email = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    role = Column(enum_column(UserRole), nullable=False, default=UserRole.USER)
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

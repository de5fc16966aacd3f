"""USD access requests."""
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from cambio.database import Base
from cambio.models.base import enum_column, generate_id


class UsdPermissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UsdPermission(Base):
    """
    A customer's request to send USD (USDT) transfers.

    One row per customer. ``admin_id`` records who decided it.
    """

    __tablename__ = "usd_permissions"

    id = Column(String, primary_key=True, default=lambda: generate_id("usdperm"))
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True)
    status = Column(enum_column(UsdPermissionStatus), nullable=False, default=UsdPermissionStatus.PENDING)
    admin_id = Column(String, ForeignKey("profiles.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

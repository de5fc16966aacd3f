"""
Notification Models

In-app notifications shown in the user's notification bell.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import func

from cambio.database import Base
from cambio.models.base import generate_id


class Notification(Base):
    """
    A message for one user.

    Written as a side effect of transfer transitions and account changes.
    Delivery is best-effort: a failed insert never undoes the change that
    triggered it.
    """
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=lambda: generate_id("notif"))
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    # Content
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)

    # Reference to the transfer that caused it, if any
    transfer_id = Column(String, ForeignKey("transfers.id"), nullable=True)

    # Status
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

"""
Audit Log model for tracking state changes.

Every status transition, verification change, rate edit and receiving-account
toggle is recorded here in the same transaction as the change itself.
"""
from sqlalchemy import Column, String, DateTime, Text, Index
from sqlalchemy.sql import func

from cambio.database import Base
from cambio.models.base import JSONType, generate_id


class AuditLog(Base):
    """
    Audit Log - append-only trail of changes to money-moving records.

    Used for:
    - Reconstructing a transfer's status history
    - Answering "who verified this account, and when"
    - Reviewing rate edits
    """

    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=lambda: generate_id("audit"))

    # What changed?
    entity_type = Column(String, nullable=False, index=True)
    # Options: "transfer", "saved_account", "admin_account", "exchange_rate", "cardless_withdrawal",
    # "usd_permission"

    entity_id = Column(String, nullable=False, index=True)

    # What kind of change?
    action = Column(String, nullable=False, index=True)
    # Options:
    # - "create": New record created
    # - "transition": Transfer status changed
    # - "update": Field(s) edited
    # - "verify" / "unverify": Stablecoin verification granted / revoked
    # - "activate" / "deactivate": Receiving account toggled
    # - "approve" / "reject": USD access request decided

    # What field changed? (for updates)
    field_name = Column(String, nullable=True)

    # What were the values?
    old_value = Column(JSONType, nullable=True)
    new_value = Column(JSONType, nullable=True)

    # Who made the change?
    user_id = Column(String, nullable=True, index=True)

    # What triggered the change?
    source = Column(String, nullable=False, default="api")
    # Options:
    # - "api": Direct API call by the owner
    # - "admin": Admin action
    # - "cascade": Follow-on change caused by another action

    # Additional context
    extra_data = Column("extra_data", JSONType, nullable=True)

    notes = Column(Text, nullable=True)

    # When?
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_user_time", "user_id", "created_at"),
    )

    def __repr__(self):
        return (
            f"<AuditLog {self.id}: "
            f"{self.action} on {self.entity_type}/{self.entity_id} "
            f"at {self.created_at}>"
        )

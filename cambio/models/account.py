"""Payout accounts owned by customers and receiving accounts owned by the platform."""
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.sql import func

from cambio.database import Base
from cambio.models.base import JSONType, enum_column, generate_id


class SavedAccountType(str, Enum):
    CLABE = "clabe"
    CARD = "card"
    BINANCE = "binance"


class AdminAccountType(str, Enum):
    BANK = "bank"
    BINANCE = "binance"


class SavedAccount(Base):
    """
    A payout account a customer registered for receiving transfers.

    ``usdt_enabled`` and ``verified_at``/``verified_by`` are written only by
    administrators; together they decide stablecoin eligibility.
    """

    __tablename__ = "saved_accounts"

    id = Column(String, primary_key=True, default=lambda: generate_id("acct"))
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(enum_column(SavedAccountType), nullable=False)
    details = Column(JSONType, nullable=False, default=dict)
    # {"clabe": ...} | {"card_number": ..., "card_holder": ...} | {"binance_id": ..., "binance_email": ...}

    usdt_enabled = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verified_by = Column(String, ForeignKey("profiles.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AdminAccount(Base):
    """Receiving account published to customers for deposits in one currency."""

    __tablename__ = "admin_accounts"

    id = Column(String, primary_key=True, default=lambda: generate_id("adacct"))
    currency = Column(String, nullable=False, index=True)
    account_type = Column(enum_column(AdminAccountType), nullable=False)
    account_details = Column(JSONType, nullable=False, default=dict)
    # bank: {"bank_name", "account_number", "account_holder"}
    # binance: {"binance_id", "binance_email"}
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        # At most one active receiving account per currency
        Index(
            "uq_admin_accounts_active_currency",
            "currency",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

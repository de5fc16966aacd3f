"""
Transfer Models

Transfer is the central record of the system. Its ``status`` column is only
ever changed by ``cambio.transfers.service.TransferService`` through
conditional updates; see ``cambio.transfers.lifecycle`` for the rules.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.sql import func

from cambio.database import Base
from cambio.models.base import JSONType, as_utc, enum_column, generate_id, utcnow


class TransferKind(str, Enum):
    """How the transfer is fulfilled."""
    BANK_OR_CARD = "bank_or_card"  # Paid out to a CLABE or a card
    CARDLESS = "cardless"          # Recipient collects cash with a one-time code
    STABLECOIN = "stablecoin"      # Paid out in the hub stablecoin to a Binance account


class TransferStatus(str, Enum):
    """Lifecycle status of a transfer."""
    PENDING = "pending"                            # Awaiting deposit / fulfilment
    PENDING_USD_APPROVAL = "pending_usd_approval"  # Stablecoin payout awaiting admin approval
    PENDING_CARDLESS = "pending_cardless"          # Awaiting withdrawal code issuance
    COMPLETED = "completed"
    FAILED = "failed"


class DestinationType(str, Enum):
    CLABE = "clabe"
    CARD = "card"
    BINANCE = "binance"


class WithdrawalStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


class Transfer(Base):
    """A money transfer between two currencies. Never deleted."""

    __tablename__ = "transfers"

    id = Column(String, primary_key=True, default=lambda: generate_id("trf"))
    user_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)

    kind = Column(enum_column(TransferKind), nullable=False)
    status = Column(enum_column(TransferStatus), nullable=False, index=True)

    # Amounts
    amount = Column(Numeric(precision=20, scale=8), nullable=False)
    origin_currency = Column(String, nullable=False)
    destination_currency = Column(String, nullable=False, index=True)
    exchange_rate = Column(Numeric(precision=24, scale=12), nullable=False)
    destination_amount = Column(Numeric(precision=20, scale=8), nullable=False)

    # Payout target; empty for cardless transfers until the code is issued
    destination_type = Column(enum_column(DestinationType), nullable=True)
    destination_details = Column(JSONType, nullable=True)
    saved_account_id = Column(String, ForeignKey("saved_accounts.id"), nullable=True)

    # Set once by the owner after depositing into the platform's account
    deposit_confirmed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class CardlessWithdrawal(Base):
    """
    One-time cash withdrawal code for a cardless transfer.

    The stored ``status`` is informational only: whether the code can still be
    used is derived from ``expires_at`` at read time.
    """

    __tablename__ = "cardless_withdrawals"

    id = Column(String, primary_key=True, default=lambda: generate_id("wd"))
    transfer_id = Column(String, ForeignKey("transfers.id"), nullable=False, unique=True)
    code = Column(String(8), nullable=False)
    status = Column(enum_column(WithdrawalStatus), nullable=False, default=WithdrawalStatus.ACTIVE)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(String, ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return as_utc(now) < as_utc(self.expires_at)

    def effective_status(self, now: Optional[datetime] = None) -> WithdrawalStatus:
        return WithdrawalStatus.ACTIVE if self.is_active(now) else WithdrawalStatus.EXPIRED

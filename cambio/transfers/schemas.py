"""Transfer schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from cambio.models.transfer import DestinationType, TransferKind, TransferStatus, WithdrawalStatus
from cambio.transfers.lifecycle import TransferEvent


class TransferCreate(BaseModel):
    """
    A new transfer. Rate and destination amount are computed by the server.

    Either ``saved_account_id`` or ``destination_type`` + ``destination_details``
    is required, except for cardless transfers, which ignore them.
    """
    kind: TransferKind = TransferKind.BANK_OR_CARD
    amount: Decimal = Field(gt=0, max_digits=20, decimal_places=8)
    origin_currency: str
    destination_currency: str
    destination_type: Optional[DestinationType] = None
    destination_details: Optional[Dict[str, Any]] = None
    saved_account_id: Optional[str] = None


class TransferResponse(BaseModel):
    id: str
    user_id: str
    kind: TransferKind
    status: TransferStatus
    amount: Decimal
    origin_currency: str
    destination_currency: str
    exchange_rate: Decimal
    destination_amount: Decimal
    destination_type: Optional[DestinationType] = None
    destination_details: Optional[Dict[str, Any]] = None
    saved_account_id: Optional[str] = None
    deposit_confirmed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    # Filled in by the route for the admin action menu
    available_events: List[TransferEvent] = []

    class Config:
        from_attributes = True


class TransitionRequest(BaseModel):
    event: TransferEvent


class CardlessCodeRequest(BaseModel):
    code: str  # exactly 8 digits


class CardlessWithdrawalResponse(BaseModel):
    id: str
    transfer_id: str
    code: str
    status: WithdrawalStatus  # derived from expires_at at read time
    active: bool
    expires_at: datetime
    created_at: datetime


class TransferHistoryEntry(BaseModel):
    id: str
    action: str
    field_name: Optional[str] = None
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    user_id: Optional[str] = None
    source: str
    created_at: datetime

    class Config:
        from_attributes = True

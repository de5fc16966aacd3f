"""Saved account and receiving account schemas."""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel

from cambio.models.account import AdminAccountType, SavedAccountType
from cambio.models.usd_permission import UsdPermissionStatus


class SavedAccountCreate(BaseModel):
    type: SavedAccountType
    details: Dict[str, Any]
    # clabe:   {"clabe": "18 digits"}
    # card:    {"card_number": "16 digits", "card_holder": "..."}
    # binance: {"binance_id": "...", "binance_email": "..."}


class SavedAccountResponse(BaseModel):
    id: str
    user_id: str
    type: SavedAccountType
    details: Dict[str, Any]
    usdt_enabled: bool
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class VerificationRequest(BaseModel):
    verified: bool


class AdminAccountCreate(BaseModel):
    currency: str
    account_type: AdminAccountType
    account_details: Dict[str, Any]


class AdminAccountResponse(BaseModel):
    id: str
    currency: str
    account_type: AdminAccountType
    account_details: Dict[str, Any]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ActivationRequest(BaseModel):
    active: bool


class UsdPermissionResponse(BaseModel):
    id: str
    user_id: str
    status: UsdPermissionStatus
    admin_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UsdDecisionRequest(BaseModel):
    approved: bool

"""Routes for customer payout accounts, USD access requests and the platform's receiving accounts."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.accounts.admin_accounts import AdminAccountService
from cambio.accounts.schemas import (
    ActivationRequest,
    AdminAccountCreate,
    AdminAccountResponse,
    SavedAccountCreate,
    SavedAccountResponse,
    UsdDecisionRequest,
    UsdPermissionResponse,
    VerificationRequest,
)
from cambio.accounts.service import SavedAccountService
from cambio.accounts.usd_permissions import UsdPermissionService
from cambio.auth.actor import Actor
from cambio.auth.dependencies import get_current_actor
from cambio.database import get_db
from cambio.models.usd_permission import UsdPermissionStatus
from cambio.notifications.service import NotificationService, get_notification_service

router = APIRouter(tags=["accounts"])


# ============================================================================
# Saved accounts
# ============================================================================

@router.post("/accounts", response_model=SavedAccountResponse, status_code=201)
async def create_account(
    data: SavedAccountCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    return await SavedAccountService(db, notifier).create_account(actor, data.type, data.details)


@router.get("/accounts", response_model=List[SavedAccountResponse])
async def list_accounts(
    user_id: Optional[str] = Query(None, description="Admins only: filter by owner"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    return await SavedAccountService(db, notifier).list_accounts(actor, user_id=user_id)


@router.post("/accounts/{account_id}/verification", response_model=SavedAccountResponse)
async def set_verification(
    account_id: str,
    data: VerificationRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Grant or revoke USDT eligibility. Admin only."""
    return await SavedAccountService(db, notifier).verify_account(account_id, data.verified, actor)


# ============================================================================
# Receiving accounts
# ============================================================================

@router.get("/admin-accounts", response_model=List[AdminAccountResponse])
async def list_admin_accounts(
    currency: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await AdminAccountService(db).list_accounts(actor, currency=currency)


@router.get("/admin-accounts/active/{currency}", response_model=AdminAccountResponse)
async def get_active_admin_account(
    currency: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Deposit instructions for ``currency``."""
    return await AdminAccountService(db).get_active_account(currency)


@router.post("/admin-accounts", response_model=AdminAccountResponse, status_code=201)
async def create_admin_account(
    data: AdminAccountCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await AdminAccountService(db).create_account(
        actor, data.currency, data.account_type, data.account_details
    )


@router.post("/admin-accounts/{account_id}/activation", response_model=AdminAccountResponse)
async def set_admin_account_activation(
    account_id: str,
    data: ActivationRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await AdminAccountService(db).set_active(actor, account_id, data.active)


# ============================================================================
# USD access requests
# ============================================================================

@router.get("/usd-permission", response_model=UsdPermissionResponse)
async def get_usd_permission(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """The current user's request, if any."""
    return await UsdPermissionService(db, notifier).get_permission(actor)


@router.post("/usd-permission", response_model=UsdPermissionResponse, status_code=201)
async def request_usd_permission(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    return await UsdPermissionService(db, notifier).request_permission(actor)


@router.get("/usd-permissions", response_model=List[UsdPermissionResponse])
async def list_usd_permissions(
    status: Optional[UsdPermissionStatus] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    return await UsdPermissionService(db, notifier).list_permissions(actor, status=status)


@router.post("/usd-permissions/{user_id}/decision", response_model=UsdPermissionResponse)
async def decide_usd_permission(
    user_id: str,
    data: UsdDecisionRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Approve or reject a user's USD access. Admin only."""
    return await UsdPermissionService(db, notifier).decide(user_id, data.approved, actor)

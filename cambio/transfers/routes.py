"""
Transfer Routes

Customers create transfers and confirm deposits; administrators drive the
lifecycle. All rules live in ``TransferService``.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.auth.actor import Actor
from cambio.auth.dependencies import get_current_actor
from cambio.database import get_db
from cambio.models.base import utcnow
from cambio.models.transfer import CardlessWithdrawal, Transfer, TransferStatus
from cambio.notifications.service import NotificationService, get_notification_service
from cambio.transfers.lifecycle import available_events
from cambio.transfers.schemas import (
    CardlessCodeRequest,
    CardlessWithdrawalResponse,
    TransferCreate,
    TransferHistoryEntry,
    TransferResponse,
    TransitionRequest,
)
from cambio.transfers.service import TransferService

router = APIRouter(prefix="/transfers", tags=["transfers"])


def _to_response(transfer: Transfer, actor: Actor) -> TransferResponse:
    response = TransferResponse.model_validate(transfer)
    if actor.is_admin:
        response.available_events = available_events(transfer.status)
    return response


def _withdrawal_response(withdrawal: CardlessWithdrawal) -> CardlessWithdrawalResponse:
    now = utcnow()
    return CardlessWithdrawalResponse(
        id=withdrawal.id,
        transfer_id=withdrawal.transfer_id,
        code=withdrawal.code,
        status=withdrawal.effective_status(now),
        active=withdrawal.is_active(now),
        expires_at=withdrawal.expires_at,
        created_at=withdrawal.created_at,
    )


@router.post("", response_model=TransferResponse, status_code=201)
async def create_transfer(
    data: TransferCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    transfer = await TransferService(db, notifier).create_transfer(
        actor,
        kind=data.kind,
        amount=data.amount,
        origin_currency=data.origin_currency,
        destination_currency=data.destination_currency,
        destination_type=data.destination_type,
        destination_details=data.destination_details,
        saved_account_id=data.saved_account_id,
    )
    return _to_response(transfer, actor)


@router.get("", response_model=List[TransferResponse])
async def list_transfers(
    status: Optional[TransferStatus] = Query(None),
    user_id: Optional[str] = Query(None, description="Admins only: filter by owner"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    transfers = await TransferService(db, notifier).list_transfers(actor, status=status, user_id=user_id)
    return [_to_response(t, actor) for t in transfers]


@router.get("/{transfer_id}", response_model=TransferResponse)
async def get_transfer(
    transfer_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    transfer = await TransferService(db, notifier).get_transfer(actor, transfer_id)
    return _to_response(transfer, actor)


@router.get("/{transfer_id}/history", response_model=List[TransferHistoryEntry])
async def get_transfer_history(
    transfer_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Status changes and edits, oldest first. Admin only."""
    return await TransferService(db, notifier).get_history(actor, transfer_id)


@router.post("/{transfer_id}/transitions", response_model=TransferResponse)
async def apply_transition(
    transfer_id: str,
    data: TransitionRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Approve, complete or reject a transfer. Admin only."""
    transfer = await TransferService(db, notifier).apply_transition(transfer_id, data.event, actor)
    return _to_response(transfer, actor)


@router.post("/{transfer_id}/confirm-deposit", response_model=TransferResponse)
async def confirm_deposit(
    transfer_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    transfer = await TransferService(db, notifier).confirm_deposit(transfer_id, actor)
    return _to_response(transfer, actor)


@router.post("/{transfer_id}/cardless-code", response_model=CardlessWithdrawalResponse, status_code=201)
async def issue_cardless_code(
    transfer_id: str,
    data: CardlessCodeRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Issue the withdrawal code and complete the cardless transfer. Admin only."""
    withdrawal = await TransferService(db, notifier).issue_cardless_code(transfer_id, data.code, actor)
    return _withdrawal_response(withdrawal)


@router.get("/{transfer_id}/cardless-code", response_model=CardlessWithdrawalResponse)
async def get_cardless_code(
    transfer_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    withdrawal = await TransferService(db, notifier).get_withdrawal(actor, transfer_id)
    return _withdrawal_response(withdrawal)

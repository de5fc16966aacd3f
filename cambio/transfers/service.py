"""
Transfer Service

Creates transfers and moves them through the lifecycle.

Every status change is a conditional UPDATE on the status the caller observed
(compare-and-set), so two administrators acting on the same transfer cannot
both succeed. The change, its audit entry and any cascaded records commit in
one transaction; notifications and chat messages follow best-effort after the
commit.
"""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.accounts.validation import account_identity, validate_account_details
from cambio.accounts.verification import ensure_can_receive_stablecoin
from cambio.audit.services import AuditService
from cambio.auth.actor import Actor, ensure_admin
from cambio.currencies import STABLECOIN
from cambio.errors import (
    ConflictError,
    GuardFailure,
    NotFoundError,
    PermissionDenied,
    ValidationError,
    store_errors,
)
from cambio.models.account import SavedAccount, SavedAccountType
from cambio.models.audit import AuditLog
from cambio.models.profile import Profile
from cambio.models.transfer import (
    CardlessWithdrawal,
    DestinationType,
    Transfer,
    TransferKind,
    TransferStatus,
)
from cambio.models.base import utcnow
from cambio.notifications.service import NotificationService
from cambio.rates.service import ExchangeRateService
from cambio.transfers.lifecycle import (
    KIND_LABELS,
    TERMINAL_STATUSES,
    Transition,
    TransferEvent,
    initial_status,
    plan_transition,
    validate_cardless_code,
)

logger = logging.getLogger(__name__)

CARDLESS_CODE_TTL = timedelta(days=2)


class TransferService:
    """Transfer creation, lifecycle transitions and cardless withdrawals."""

    def __init__(self, db: AsyncSession, notifier: NotificationService):
        self.db = db
        self.notifier = notifier

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_transfer(self, actor: Actor, transfer_id: str) -> Transfer:
        """A transfer visible to ``actor``: their own, or any for administrators."""
        async with store_errors(self.db):
            transfer = await self._get(transfer_id)
        self._ensure_visible(actor, transfer)
        return transfer

    async def list_transfers(
        self,
        actor: Actor,
        status: Optional[TransferStatus] = None,
        user_id: Optional[str] = None,
    ) -> List[Transfer]:
        """Newest first. Customers only ever see their own transfers."""
        query = select(Transfer).order_by(Transfer.created_at.desc(), Transfer.id.desc())
        if not actor.is_admin:
            query = query.where(Transfer.user_id == actor.id)
        elif user_id:
            query = query.where(Transfer.user_id == user_id)
        if status:
            query = query.where(Transfer.status == TransferStatus(status))

        async with store_errors(self.db):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def get_withdrawal(self, actor: Actor, transfer_id: str) -> CardlessWithdrawal:
        """
        The withdrawal code of a cardless transfer.

        Readable by the owner and administrators, and only once the transfer
        is completed. Expiry is derived from ``expires_at`` by the caller.
        """
        transfer = await self.get_transfer(actor, transfer_id)
        if TransferStatus(transfer.status) != TransferStatus.COMPLETED:
            raise GuardFailure("The withdrawal code is available once the transfer is completed")

        async with store_errors(self.db):
            withdrawal = await self._get_withdrawal(transfer.id)
        if not withdrawal:
            raise NotFoundError("This transfer has no withdrawal code")
        return withdrawal

    async def get_history(self, actor: Actor, transfer_id: str) -> List[AuditLog]:
        """The transfer's audit trail, oldest first. Admin only."""
        ensure_admin(actor, "read the history of a transfer")
        async with store_errors(self.db):
            transfer = await self._get(transfer_id)
            return await AuditService(self.db).get_entity_history("transfer", transfer.id)

    # ==========================================================================
    # Creation
    # ==========================================================================

    async def create_transfer(
        self,
        actor: Actor,
        kind: TransferKind,
        amount: Decimal,
        origin_currency: str,
        destination_currency: str,
        destination_type: Optional[DestinationType] = None,
        destination_details: Optional[Dict[str, Any]] = None,
        saved_account_id: Optional[str] = None,
    ) -> Transfer:
        """
        Create a transfer for ``actor``.

        The rate and destination amount are always computed here from the
        current rate table; clients never supply them. Stablecoin payouts
        require a Binance account verified for USDT.
        """
        amount = Decimal(str(amount))
        kind = TransferKind(kind)
        if kind == TransferKind.STABLECOIN and destination_currency != STABLECOIN:
            raise ValidationError(f"Stablecoin transfers pay out in {STABLECOIN}")
        if kind == TransferKind.BANK_OR_CARD and destination_currency == STABLECOIN:
            kind = TransferKind.STABLECOIN

        async with store_errors(self.db):
            profile = await self.db.get(Profile, actor.id)
            if not profile:
                raise NotFoundError("Profile not found")
            if profile.is_blocked:
                raise PermissionDenied("Your account is blocked and cannot create transfers")

            conversion = await ExchangeRateService(self.db).compute_conversion(
                amount, origin_currency, destination_currency
            )
            if conversion is None:
                raise GuardFailure(
                    f"No exchange rate is available for {origin_currency} to {destination_currency}"
                )

            account = None
            if kind == TransferKind.CARDLESS:
                # Cash is collected with the code; there is no payout account
                destination_type, destination_details = None, None
            else:
                account, destination_type, destination_details = await self._resolve_destination(
                    actor, kind, destination_type, destination_details, saved_account_id
                )

            transfer = Transfer(
                user_id=actor.id,
                kind=kind,
                status=initial_status(kind, destination_currency),
                amount=amount,
                origin_currency=origin_currency,
                destination_currency=destination_currency,
                exchange_rate=conversion.rate,
                destination_amount=conversion.amount,
                destination_type=destination_type,
                destination_details=destination_details,
                saved_account_id=account.id if account else None,
            )
            self.db.add(transfer)
            await self.db.flush()

            await AuditService(self.db, actor.id).log_create(
                "transfer",
                transfer.id,
                {
                    "kind": kind.value,
                    "status": transfer.status.value,
                    "amount": str(amount),
                    "origin_currency": origin_currency,
                    "destination_currency": destination_currency,
                    "exchange_rate": str(conversion.rate),
                },
            )
            await self.db.commit()
            await self.db.refresh(transfer)

        logger.info(
            f"Transfer {transfer.id} created by {actor.id}: {amount} {origin_currency} -> "
            f"{conversion.amount} {destination_currency} ({transfer.status.value})"
        )
        await self.notifier.notify_admins(
            f"New {KIND_LABELS[kind]} transfer",
            f"{profile.display_name} started a transfer of {amount} {origin_currency} "
            f"to {destination_currency}.",
            transfer_id=transfer.id,
        )
        return transfer

    async def _resolve_destination(
        self,
        actor: Actor,
        kind: TransferKind,
        destination_type: Optional[DestinationType],
        destination_details: Optional[Dict[str, Any]],
        saved_account_id: Optional[str],
    ):
        """Returns ``(saved_account or None, destination_type, details)``."""
        account = None
        if saved_account_id:
            account = await self.db.get(SavedAccount, saved_account_id)
            if not account or account.user_id != actor.id:
                raise NotFoundError("Saved account not found")
            destination_type = DestinationType(SavedAccountType(account.type).value)
            destination_details = dict(account.details)
        else:
            if destination_type is None:
                raise ValidationError("A destination account is required")
            destination_type = DestinationType(destination_type)
            destination_details = validate_account_details(
                SavedAccountType(destination_type.value), destination_details
            )

        if kind == TransferKind.STABLECOIN:
            if destination_type != DestinationType.BINANCE:
                raise ValidationError(f"{STABLECOIN} transfers can only be sent to a Binance account")
            if account is None:
                account = await self._find_saved_binance(actor.id, destination_details)
            ensure_can_receive_stablecoin(account)
        elif destination_type == DestinationType.BINANCE:
            raise ValidationError(f"Binance accounts can only receive {STABLECOIN} transfers")

        return account, destination_type, destination_details

    async def _find_saved_binance(self, user_id: str, details: Dict[str, Any]) -> Optional[SavedAccount]:
        result = await self.db.execute(
            select(SavedAccount).where(
                SavedAccount.user_id == user_id,
                SavedAccount.type == SavedAccountType.BINANCE,
            )
        )
        wanted = account_identity(SavedAccountType.BINANCE, details)
        for account in result.scalars().all():
            if account_identity(SavedAccountType.BINANCE, account.details) == wanted:
                return account
        return None

    # ==========================================================================
    # Transitions
    # ==========================================================================

    async def apply_transition(self, transfer_id: str, event: TransferEvent, actor: Actor) -> Transfer:
        """
        Apply an admin ``event`` to a transfer.

        Raises GuardFailure if the event is not allowed from the current status,
        including when another actor changed the status after it was read.
        """
        ensure_admin(actor, "change the status of a transfer")
        event = TransferEvent(event)
        if event == TransferEvent.ISSUE_CODE:
            raise ValidationError("Withdrawal codes are issued together with the code itself")

        async with store_errors(self.db):
            transfer = await self._get(transfer_id)
            transition = plan_transition(transfer.status, event)
            await self._compare_and_set(transfer.id, transition)
            await AuditService(self.db, actor.id, "admin").log_transition(
                transfer.id, transition.source.value, transition.target.value, event=event.value
            )
            await self.db.commit()
            await self.db.refresh(transfer)

        logger.info(
            f"Transfer {transfer.id}: {transition.source.value} -> {transition.target.value} "
            f"({event.value} by {actor.id})"
        )
        await self._announce(transfer, transition, actor)
        return transfer

    async def issue_cardless_code(self, transfer_id: str, code: str, actor: Actor) -> CardlessWithdrawal:
        """
        Issue the one-time withdrawal code of a cardless transfer.

        Creates the withdrawal record and completes the transfer atomically;
        the code stays usable for two days.
        """
        ensure_admin(actor, "issue withdrawal codes")
        code = validate_cardless_code(code)

        async with store_errors(self.db, conflict_message="A withdrawal code was already issued for this transfer"):
            transfer = await self._get(transfer_id)
            if TransferKind(transfer.kind) != TransferKind.CARDLESS:
                raise GuardFailure("Withdrawal codes can only be issued for cardless transfers")
            transition = plan_transition(transfer.status, TransferEvent.ISSUE_CODE)
            if await self._get_withdrawal(transfer.id):
                raise ConflictError("A withdrawal code was already issued for this transfer")

            withdrawal = CardlessWithdrawal(
                transfer_id=transfer.id,
                code=code,
                expires_at=utcnow() + CARDLESS_CODE_TTL,
                created_by=actor.id,
            )
            self.db.add(withdrawal)
            await self.db.flush()
            await self._compare_and_set(transfer.id, transition)

            audit = AuditService(self.db, actor.id, "admin")
            await audit.log_create(
                "cardless_withdrawal",
                withdrawal.id,
                {"transfer_id": transfer.id, "expires_at": withdrawal.expires_at.isoformat()},
            )
            await audit.log_transition(
                transfer.id, transition.source.value, transition.target.value, event=transition.event.value
            )
            await self.db.commit()
            await self.db.refresh(withdrawal)
            await self.db.refresh(transfer)

        logger.info(f"Withdrawal code issued for transfer {transfer.id} by {actor.id}")
        await self._announce(transfer, transition, actor)
        return withdrawal

    async def confirm_deposit(self, transfer_id: str, actor: Actor) -> Transfer:
        """The owner reports having deposited the origin amount. Recorded once."""
        async with store_errors(self.db):
            transfer = await self._get(transfer_id)
            if transfer.user_id != actor.id:
                raise PermissionDenied("Only the owner of a transfer can confirm its deposit")

            result = await self.db.execute(
                update(Transfer)
                .where(
                    Transfer.id == transfer.id,
                    Transfer.deposit_confirmed_at.is_(None),
                    Transfer.status.notin_(list(TERMINAL_STATUSES)),
                )
                .values(deposit_confirmed_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.db.refresh(transfer)
                if transfer.deposit_confirmed_at is not None:
                    raise GuardFailure("The deposit was already confirmed")
                raise GuardFailure(f"Transfer is already {TransferStatus(transfer.status).value}")

            await AuditService(self.db, actor.id).log(
                "transfer", transfer.id, "update", field_name="deposit_confirmed_at"
            )
            await self.db.commit()
            await self.db.refresh(transfer)

        logger.info(f"Deposit confirmed for transfer {transfer.id}")
        await self.notifier.notify_admins(
            "Deposit confirmed",
            f"The customer confirmed the deposit of {transfer.amount} {transfer.origin_currency}.",
            transfer_id=transfer.id,
        )
        await self.notifier.post_system_message(
            transfer.id, "💰 The customer confirmed the deposit", author_id=actor.id
        )
        return transfer

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _get(self, transfer_id: str) -> Transfer:
        transfer = await self.db.get(Transfer, transfer_id)
        if not transfer:
            raise NotFoundError("Transfer not found")
        return transfer

    async def _get_withdrawal(self, transfer_id: str) -> Optional[CardlessWithdrawal]:
        result = await self.db.execute(
            select(CardlessWithdrawal).where(CardlessWithdrawal.transfer_id == transfer_id)
        )
        return result.scalar_one_or_none()

    async def _compare_and_set(self, transfer_id: str, transition: Transition) -> None:
        """Move the transfer to ``transition.target`` only if it is still in ``transition.source``."""
        result = await self.db.execute(
            update(Transfer)
            .where(Transfer.id == transfer_id, Transfer.status == transition.source)
            .values(status=transition.target)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                f"Transfer {transfer_id} left {transition.source.value} before {transition.event.value}"
            )
            raise GuardFailure(
                f"Transfer is no longer {transition.source.value}; it was changed by someone else"
            )

    def _ensure_visible(self, actor: Actor, transfer: Transfer) -> None:
        if not actor.is_admin and transfer.user_id != actor.id:
            # Existence of other customers' transfers is not disclosed
            raise NotFoundError("Transfer not found")

    async def _announce(self, transfer: Transfer, transition: Transition, actor: Actor) -> None:
        label = KIND_LABELS[TransferKind(transfer.kind)]
        await self.notifier.send(
            transfer.user_id,
            transition.title.format(label=label),
            transition.content,
            transfer_id=transfer.id,
        )
        await self.notifier.post_system_message(transfer.id, transition.chat_message, author_id=actor.id)

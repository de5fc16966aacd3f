"""
Saved Account Service

Customer payout accounts and their stablecoin verification.

Verifying a Binance account releases the owner's USDT transfers waiting for
approval; removing the last verification pauses their not-yet-completed USDT
transfers again. Both cascades commit together with the verification change.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.accounts.validation import account_identity, validate_account_details
from cambio.accounts.verification import can_receive_stablecoin
from cambio.audit.services import AuditService
from cambio.auth.actor import Actor, ensure_admin
from cambio.currencies import STABLECOIN
from cambio.errors import ConflictError, NotFoundError, ValidationError, store_errors
from cambio.models.account import SavedAccount, SavedAccountType
from cambio.models.base import utcnow
from cambio.models.transfer import Transfer, TransferStatus
from cambio.notifications.service import NotificationService

logger = logging.getLogger(__name__)


class SavedAccountService:
    def __init__(self, db: AsyncSession, notifier: NotificationService):
        self.db = db
        self.notifier = notifier

    async def list_accounts(self, actor: Actor, user_id: Optional[str] = None) -> List[SavedAccount]:
        """The actor's own accounts; administrators may list anyone's, or all."""
        query = select(SavedAccount).order_by(SavedAccount.created_at.desc(), SavedAccount.id.desc())
        if not actor.is_admin:
            query = query.where(SavedAccount.user_id == actor.id)
        elif user_id:
            query = query.where(SavedAccount.user_id == user_id)

        async with store_errors(self.db):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def create_account(
        self,
        actor: Actor,
        account_type: SavedAccountType,
        details: Dict[str, Any],
    ) -> SavedAccount:
        """Register a payout account. New accounts are never verified."""
        account_type = SavedAccountType(account_type)
        details = validate_account_details(account_type, details)
        identity = account_identity(account_type, details)

        async with store_errors(self.db):
            result = await self.db.execute(
                select(SavedAccount).where(
                    SavedAccount.user_id == actor.id,
                    SavedAccount.type == account_type,
                )
            )
            for existing in result.scalars().all():
                if account_identity(account_type, existing.details) == identity:
                    raise ConflictError(f"This {account_type.value} account is already registered")
                if (
                    account_type == SavedAccountType.BINANCE
                    and existing.details.get("binance_email", "").lower() == details["binance_email"].lower()
                ):
                    raise ConflictError("A Binance account with this email is already registered")

            account = SavedAccount(user_id=actor.id, type=account_type, details=details)
            self.db.add(account)
            await self.db.flush()
            await AuditService(self.db, actor.id).log_create(
                "saved_account", account.id, {"type": account_type.value}
            )
            await self.db.commit()
            await self.db.refresh(account)

        logger.info(f"Saved account {account.id} ({account_type.value}) created by {actor.id}")
        return account

    async def verify_account(self, account_id: str, verified: bool, actor: Actor) -> SavedAccount:
        """
        Grant or revoke USDT eligibility of a Binance account. Admin only.

        Granting moves the owner's USDT transfers in ``pending_usd_approval``
        to ``pending``. Revoking moves their ``pending`` USDT transfers back to
        ``pending_usd_approval`` unless another verified account remains.
        """
        ensure_admin(actor, "verify accounts")

        async with store_errors(self.db):
            account = await self.db.get(SavedAccount, account_id)
            if not account:
                raise NotFoundError("Saved account not found")
            if SavedAccountType(account.type) != SavedAccountType.BINANCE:
                raise ValidationError("Only Binance accounts can be verified for USDT transfers")

            was_verified = can_receive_stablecoin(account)
            if verified:
                values = {"usdt_enabled": True, "verified_at": utcnow(), "verified_by": actor.id}
            else:
                values = {"usdt_enabled": False, "verified_at": None, "verified_by": None}
            await self.db.execute(
                update(SavedAccount)
                .where(SavedAccount.id == account.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )

            audit = AuditService(self.db, actor.id, "admin")
            await audit.log(
                "saved_account",
                account.id,
                "verify" if verified else "unverify",
                field_name="usdt_enabled",
                old_value=was_verified,
                new_value=verified,
            )

            if verified:
                moved = await self._cascade(
                    account.user_id, TransferStatus.PENDING_USD_APPROVAL, TransferStatus.PENDING, audit
                )
            elif await self._has_other_verified(account.user_id, account.id):
                moved = []
            else:
                moved = await self._cascade(
                    account.user_id, TransferStatus.PENDING, TransferStatus.PENDING_USD_APPROVAL, audit
                )

            await self.db.commit()
            await self.db.refresh(account)

        logger.info(
            f"Account {account.id} {'verified' if verified else 'unverified'} by {actor.id}; "
            f"{len(moved)} transfer(s) moved"
        )
        if verified:
            await self.notifier.send(
                account.user_id,
                "Binance account verified",
                "Your Binance account has been verified for USDT transfers. "
                "Transfers waiting for approval have been released.",
            )
        else:
            await self.notifier.send(
                account.user_id,
                "Binance verification removed",
                "Your Binance account is no longer verified for USDT transfers. "
                "Pending USDT transfers will wait for a new approval.",
            )
        return account

    async def _has_other_verified(self, user_id: str, account_id: str) -> bool:
        result = await self.db.execute(
            select(SavedAccount).where(
                SavedAccount.user_id == user_id,
                SavedAccount.id != account_id,
                SavedAccount.type == SavedAccountType.BINANCE,
                SavedAccount.usdt_enabled.is_(True),
                SavedAccount.verified_at.is_not(None),
            )
        )
        return result.first() is not None

    async def _cascade(
        self,
        user_id: str,
        source: TransferStatus,
        target: TransferStatus,
        audit: AuditService,
    ) -> List[str]:
        """Move the owner's USDT transfers from ``source`` to ``target``, one conditional update each."""
        result = await self.db.execute(
            select(Transfer.id).where(
                Transfer.user_id == user_id,
                Transfer.status == source,
                Transfer.destination_currency == STABLECOIN,
            )
        )
        moved = []
        for transfer_id in result.scalars().all():
            updated = await self.db.execute(
                update(Transfer)
                .where(Transfer.id == transfer_id, Transfer.status == source)
                .values(status=target)
                .execution_options(synchronize_session=False)
            )
            # Lost a race with an admin action on that transfer; leave it alone
            if updated.rowcount != 1:
                continue
            await audit.log_transition(transfer_id, source.value, target.value, source="cascade")
            moved.append(transfer_id)
        return moved

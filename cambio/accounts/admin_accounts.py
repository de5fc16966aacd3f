"""
Admin Account Service

The platform's receiving accounts. Customers deposit into the single active
account of their origin currency, so at most one account per currency may be
active. The store enforces that with a partial unique index; the pre-checks
here only produce a friendlier message first.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.accounts.validation import validate_admin_account_details
from cambio.audit.services import AuditService
from cambio.auth.actor import Actor, ensure_admin
from cambio.errors import ConflictError, NotFoundError, store_errors
from cambio.models.account import AdminAccount, AdminAccountType
from cambio.rates.service import check_currency

logger = logging.getLogger(__name__)


def _active_conflict(currency: str) -> str:
    return f"There is already an active account for {currency}. Deactivate it first."


class AdminAccountService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_accounts(self, actor: Actor, currency: Optional[str] = None) -> List[AdminAccount]:
        ensure_admin(actor, "manage receiving accounts")
        query = select(AdminAccount).order_by(AdminAccount.currency.asc(), AdminAccount.created_at.desc())
        if currency:
            query = query.where(AdminAccount.currency == currency)
        async with store_errors(self.db):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def get_active_account(self, currency: str) -> AdminAccount:
        """The account customers should deposit into for ``currency``."""
        check_currency(currency)
        async with store_errors(self.db):
            account = await self._find_active(currency)
        if not account:
            raise NotFoundError(f"No receiving account is active for {currency}")
        return account

    async def create_account(
        self,
        actor: Actor,
        currency: str,
        account_type: AdminAccountType,
        account_details: Dict[str, Any],
    ) -> AdminAccount:
        """New receiving accounts start active."""
        ensure_admin(actor, "manage receiving accounts")
        check_currency(currency)
        account_type = AdminAccountType(account_type)
        details = validate_admin_account_details(account_type, account_details)

        async with store_errors(self.db, conflict_message=_active_conflict(currency)):
            if await self._find_active(currency):
                raise ConflictError(_active_conflict(currency))

            account = AdminAccount(
                currency=currency,
                account_type=account_type,
                account_details=details,
                is_active=True,
            )
            self.db.add(account)
            await self.db.flush()
            await AuditService(self.db, actor.id, "admin").log_create(
                "admin_account", account.id, {"currency": currency, "account_type": account_type.value}
            )
            await self.db.commit()
            await self.db.refresh(account)

        logger.info(f"Receiving account {account.id} for {currency} created by {actor.id}")
        return account

    async def set_active(self, actor: Actor, account_id: str, active: bool) -> AdminAccount:
        """Activate or deactivate a receiving account."""
        ensure_admin(actor, "manage receiving accounts")

        async with store_errors(self.db):
            account = await self.db.get(AdminAccount, account_id)
            if not account:
                raise NotFoundError("Receiving account not found")
            currency = account.currency

        async with store_errors(self.db, conflict_message=_active_conflict(currency)):
            if active:
                current = await self._find_active(currency)
                if current and current.id != account.id:
                    raise ConflictError(_active_conflict(currency))

            was_active = bool(account.is_active)
            account.is_active = active
            await self.db.flush()
            if was_active != active:
                await AuditService(self.db, actor.id, "admin").log(
                    "admin_account",
                    account.id,
                    "activate" if active else "deactivate",
                    field_name="is_active",
                    old_value=was_active,
                    new_value=active,
                )
            await self.db.commit()
            await self.db.refresh(account)

        logger.info(f"Receiving account {account.id} ({currency}) active={active} by {actor.id}")
        return account

    async def _find_active(self, currency: str) -> Optional[AdminAccount]:
        result = await self.db.execute(
            select(AdminAccount).where(
                AdminAccount.currency == currency,
                AdminAccount.is_active.is_(True),
            )
        )
        return result.scalars().first()

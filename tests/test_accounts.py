"""
Tests for saved payout accounts, the verification cascade and the
platform's receiving-account rotation.
"""

import pytest

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from cambio.accounts.admin_accounts import AdminAccountService
from cambio.accounts.service import SavedAccountService
from cambio.auth.actor import Actor
from cambio.errors import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from cambio.models.account import AdminAccount, AdminAccountType, SavedAccount, SavedAccountType
from cambio.models.audit import AuditLog
from cambio.models.notification import Notification
from cambio.models.transfer import Transfer, TransferStatus

BANK_DETAILS = {"bank_name": "BBVA", "account_number": "0123456789", "account_holder": "Cambio SA"}


async def _statuses(session_factory, *transfer_ids):
    async with session_factory() as session:
        result = await session.execute(select(Transfer.id, Transfer.status).where(Transfer.id.in_(transfer_ids)))
        return {row.id: TransferStatus(row.status) for row in result}


# =============================================================================
# Saved accounts
# =============================================================================

class TestSavedAccounts:

    @pytest.mark.asyncio
    async def test_create_starts_unverified(self, db, notifier, customer_actor):
        account = await SavedAccountService(db, notifier).create_account(
            customer_actor,
            SavedAccountType.BINANCE,
            {"binance_id": "42", "binance_email": "ana@example.com"},
        )

        assert account.user_id == customer_actor.id
        assert account.usdt_enabled is False
        assert account.verified_at is None

    @pytest.mark.asyncio
    async def test_duplicate_clabe(self, db, notifier, customer_actor):
        service = SavedAccountService(db, notifier)
        await service.create_account(customer_actor, SavedAccountType.CLABE, {"clabe": "012345678901234567"})

        with pytest.raises(ConflictError):
            await service.create_account(customer_actor, SavedAccountType.CLABE, {"clabe": "012345678901234567"})

    @pytest.mark.asyncio
    async def test_duplicate_binance_email(self, db, notifier, customer_actor):
        service = SavedAccountService(db, notifier)
        await service.create_account(
            customer_actor, SavedAccountType.BINANCE, {"binance_id": "1", "binance_email": "ana@example.com"}
        )

        with pytest.raises(ConflictError, match="email"):
            await service.create_account(
                customer_actor, SavedAccountType.BINANCE, {"binance_id": "2", "binance_email": "ANA@example.com"}
            )

    @pytest.mark.asyncio
    async def test_same_number_for_different_owners(self, db, notifier, customer_actor, other_customer):
        service = SavedAccountService(db, notifier)
        details = {"card_number": "4111111111111111", "card_holder": "Ana"}

        await service.create_account(customer_actor, SavedAccountType.CARD, details)
        await service.create_account(Actor.from_profile(other_customer), SavedAccountType.CARD, details)

    @pytest.mark.asyncio
    async def test_listing_is_scoped(self, db, notifier, customer, other_customer, admin_actor, make_binance_account):
        mine = await make_binance_account(customer)
        await make_binance_account(other_customer)
        service = SavedAccountService(db, notifier)

        assert [a.id for a in await service.list_accounts(Actor.from_profile(customer))] == [mine.id]
        assert len(await service.list_accounts(admin_actor)) == 2
        assert [a.id for a in await service.list_accounts(admin_actor, user_id=customer.id)] == [mine.id]


# =============================================================================
# Verification gate
# =============================================================================

class TestVerification:

    @pytest.mark.asyncio
    async def test_verify_sets_fields(self, db, notifier, customer, admin_actor, make_binance_account):
        account = await make_binance_account(customer)

        verified = await SavedAccountService(db, notifier).verify_account(account.id, True, admin_actor)

        assert verified.usdt_enabled is True
        assert verified.verified_at is not None
        assert verified.verified_by == admin_actor.id

    @pytest.mark.asyncio
    async def test_unverify_clears_fields(self, db, notifier, customer, admin_actor, make_binance_account):
        account = await make_binance_account(customer, verified=True)

        unverified = await SavedAccountService(db, notifier).verify_account(account.id, False, admin_actor)

        assert unverified.usdt_enabled is False
        assert unverified.verified_at is None
        assert unverified.verified_by is None

    @pytest.mark.asyncio
    async def test_only_admins(self, db, notifier, customer, customer_actor, make_binance_account):
        account = await make_binance_account(customer)

        with pytest.raises(PermissionDenied):
            await SavedAccountService(db, notifier).verify_account(account.id, True, customer_actor)

    @pytest.mark.asyncio
    async def test_only_binance_accounts(self, db, session_factory, notifier, customer, admin_actor):
        async with session_factory() as session:
            account = SavedAccount(user_id=customer.id, type=SavedAccountType.CLABE, details={"clabe": "0" * 18})
            session.add(account)
            await session.commit()

        with pytest.raises(ValidationError):
            await SavedAccountService(db, notifier).verify_account(account.id, True, admin_actor)

    @pytest.mark.asyncio
    async def test_unknown_account(self, db, notifier, admin_actor):
        with pytest.raises(NotFoundError):
            await SavedAccountService(db, notifier).verify_account("acct_missing", True, admin_actor)

    @pytest.mark.asyncio
    async def test_verify_releases_waiting_usdt_transfers(
        self, db, session_factory, notifier, customer, other_customer, admin_actor,
        make_binance_account, make_transfer,
    ):
        """Only the owner's USDT transfers awaiting approval move to pending."""
        account = await make_binance_account(customer)
        waiting = await make_transfer(
            customer, status=TransferStatus.PENDING_USD_APPROVAL, destination_currency="USDT"
        )
        completed = await make_transfer(customer, status=TransferStatus.COMPLETED, destination_currency="USDT")
        someone_else = await make_transfer(
            other_customer, status=TransferStatus.PENDING_USD_APPROVAL, destination_currency="USDT"
        )

        await SavedAccountService(db, notifier).verify_account(account.id, True, admin_actor)

        assert await _statuses(session_factory, waiting.id, completed.id, someone_else.id) == {
            waiting.id: TransferStatus.PENDING,
            completed.id: TransferStatus.COMPLETED,
            someone_else.id: TransferStatus.PENDING_USD_APPROVAL,
        }
        async with session_factory() as session:
            cascade = (await session.execute(
                select(AuditLog).where(AuditLog.entity_id == waiting.id, AuditLog.source == "cascade")
            )).scalar_one()
            notified = await session.scalar(
                select(func.count()).select_from(Notification).where(Notification.user_id == customer.id)
            )
        assert cascade.new_value == "pending"
        assert notified == 1

    @pytest.mark.asyncio
    async def test_unverify_pauses_pending_usdt_transfers(
        self, db, session_factory, notifier, customer, admin_actor, make_binance_account, make_transfer
    ):
        account = await make_binance_account(customer, verified=True)
        pending_usdt = await make_transfer(customer, status=TransferStatus.PENDING, destination_currency="USDT")
        pending_mxn = await make_transfer(customer, status=TransferStatus.PENDING, destination_currency="MXN")

        await SavedAccountService(db, notifier).verify_account(account.id, False, admin_actor)

        assert await _statuses(session_factory, pending_usdt.id, pending_mxn.id) == {
            pending_usdt.id: TransferStatus.PENDING_USD_APPROVAL,
            pending_mxn.id: TransferStatus.PENDING,
        }

    @pytest.mark.asyncio
    async def test_unverify_keeps_transfers_when_another_account_is_verified(
        self, db, session_factory, notifier, customer, admin_actor, make_binance_account, make_transfer
    ):
        account = await make_binance_account(customer, verified=True, binance_id="111")
        await make_binance_account(customer, verified=True, binance_id="222")
        pending_usdt = await make_transfer(customer, status=TransferStatus.PENDING, destination_currency="USDT")

        await SavedAccountService(db, notifier).verify_account(account.id, False, admin_actor)

        assert await _statuses(session_factory, pending_usdt.id) == {pending_usdt.id: TransferStatus.PENDING}


# =============================================================================
# Receiving accounts
# =============================================================================

class TestAdminAccountRotation:
    """At most one active receiving account per currency."""

    @pytest.mark.asyncio
    async def test_new_accounts_are_active(self, db, admin_actor):
        account = await AdminAccountService(db).create_account(admin_actor, "MXN", AdminAccountType.BANK, BANK_DETAILS)

        assert account.is_active is True
        assert (await AdminAccountService(db).get_active_account("MXN")).id == account.id

    @pytest.mark.asyncio
    async def test_second_active_account_is_refused(self, db, admin_actor):
        service = AdminAccountService(db)
        await service.create_account(admin_actor, "MXN", AdminAccountType.BANK, BANK_DETAILS)

        with pytest.raises(ConflictError, match="Deactivate"):
            await service.create_account(admin_actor, "MXN", AdminAccountType.BANK, BANK_DETAILS)

    @pytest.mark.asyncio
    async def test_other_currencies_are_independent(self, db, admin_actor):
        service = AdminAccountService(db)
        await service.create_account(admin_actor, "MXN", AdminAccountType.BANK, BANK_DETAILS)
        usdt = await service.create_account(
            admin_actor, "USDT", AdminAccountType.BINANCE, {"binance_id": "9", "binance_email": "ops@example.com"}
        )

        assert usdt.is_active is True

    @pytest.mark.asyncio
    async def test_rotation(self, db, session_factory, admin_actor):
        """Deactivate the current account, then another can be activated."""
        service = AdminAccountService(db)
        first_id = (await service.create_account(admin_actor, "PEN", AdminAccountType.BANK, BANK_DETAILS)).id
        await service.set_active(admin_actor, first_id, False)
        second_id = (await service.create_account(admin_actor, "PEN", AdminAccountType.BANK, BANK_DETAILS)).id

        with pytest.raises(ConflictError):
            await service.set_active(admin_actor, first_id, True)

        await service.set_active(admin_actor, second_id, False)
        reactivated = await service.set_active(admin_actor, first_id, True)

        assert reactivated.is_active is True
        assert (await service.get_active_account("PEN")).id == first_id
        async with session_factory() as session:
            toggles = await session.scalar(
                select(func.count()).select_from(AuditLog).where(
                    AuditLog.entity_type == "admin_account",
                    AuditLog.action.in_(["activate", "deactivate"]),
                )
            )
        assert toggles == 3

    @pytest.mark.asyncio
    async def test_store_rejects_two_active_accounts(self, session_factory):
        """The partial unique index backs the check even without the service."""
        async with session_factory() as session:
            session.add(AdminAccount(currency="COP", account_type=AdminAccountType.BANK, account_details=BANK_DETAILS))
            session.add(AdminAccount(currency="COP", account_type=AdminAccountType.BANK, account_details=BANK_DETAILS))
            with pytest.raises(IntegrityError):
                await session.commit()

    @pytest.mark.asyncio
    async def test_store_decides_when_creation_races(self, db, session_factory, admin_actor, monkeypatch):
        """A second active account that slips past the lookup is refused by the index."""
        service = AdminAccountService(db)
        first_id = (await service.create_account(admin_actor, "MXN", AdminAccountType.BANK, BANK_DETAILS)).id

        async def nothing_active(self, currency):
            return None

        monkeypatch.setattr(AdminAccountService, "_find_active", nothing_active)

        with pytest.raises(ConflictError, match="Deactivate"):
            await service.create_account(admin_actor, "MXN", AdminAccountType.BANK, BANK_DETAILS)

        async with session_factory() as session:
            active = (await session.execute(
                select(AdminAccount.id).where(AdminAccount.currency == "MXN", AdminAccount.is_active.is_(True))
            )).scalars().all()
            created = await session.scalar(
                select(func.count()).select_from(AuditLog).where(AuditLog.entity_type == "admin_account")
            )
        assert active == [first_id]
        assert created == 1

    @pytest.mark.asyncio
    async def test_store_decides_when_activation_races(self, db, session_factory, admin_actor, monkeypatch):
        service = AdminAccountService(db)
        first_id = (await service.create_account(admin_actor, "PEN", AdminAccountType.BANK, BANK_DETAILS)).id
        await service.set_active(admin_actor, first_id, False)
        second_id = (await service.create_account(admin_actor, "PEN", AdminAccountType.BANK, BANK_DETAILS)).id

        async def nothing_active(self, currency):
            return None

        monkeypatch.setattr(AdminAccountService, "_find_active", nothing_active)

        with pytest.raises(ConflictError):
            await service.set_active(admin_actor, first_id, True)

        async with session_factory() as session:
            first = await session.get(AdminAccount, first_id)
            second = await session.get(AdminAccount, second_id)
        assert first.is_active is False
        assert second.is_active is True

    @pytest.mark.asyncio
    async def test_inactive_duplicates_are_allowed(self, session_factory):
        async with session_factory() as session:
            for _ in range(2):
                session.add(AdminAccount(
                    currency="COP",
                    account_type=AdminAccountType.BANK,
                    account_details=BANK_DETAILS,
                    is_active=False,
                ))
            await session.commit()

    @pytest.mark.asyncio
    async def test_no_active_account(self, db):
        with pytest.raises(NotFoundError):
            await AdminAccountService(db).get_active_account("VES")

    @pytest.mark.asyncio
    async def test_customers_cannot_manage(self, db, customer_actor):
        with pytest.raises(PermissionDenied):
            await AdminAccountService(db).create_account(customer_actor, "MXN", AdminAccountType.BANK, BANK_DETAILS)

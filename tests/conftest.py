"""Shared test fixtures and configuration for Cambio backend tests."""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("RATE_LIMIT_DEFAULT", "10000/minute")

from decimal import Decimal
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import cambio.models  # noqa: F401  registers every table
from cambio.auth.actor import Actor
from cambio.database import Base
from cambio.models.account import SavedAccount, SavedAccountType
from cambio.models.base import utcnow
from cambio.models.exchange_rate import ExchangeRate
from cambio.models.profile import Profile, UserRole
from cambio.models.transfer import DestinationType, Transfer, TransferKind, TransferStatus
from cambio.notifications.service import NotificationService


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """A throwaway SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cambio.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier(session_factory):
    return NotificationService(session_factory)


# =============================================================================
# Profiles
# =============================================================================

async def _make_profile(session_factory, email: str, role: UserRole, **extra) -> Profile:
    async with session_factory() as session:
        profile = Profile(email=email, full_name=email.split("@")[0].title(), role=role, **extra)
        session.add(profile)
        await session.commit()
        await session.refresh(profile)
        return profile


@pytest_asyncio.fixture
async def customer(session_factory) -> Profile:
    return await _make_profile(session_factory, "ana@example.com", UserRole.USER)


@pytest_asyncio.fixture
async def other_customer(session_factory) -> Profile:
    return await _make_profile(session_factory, "luis@example.com", UserRole.USER)


@pytest_asyncio.fixture
async def blocked_customer(session_factory) -> Profile:
    return await _make_profile(session_factory, "blocked@example.com", UserRole.USER, is_blocked=True)


@pytest_asyncio.fixture
async def admin(session_factory) -> Profile:
    return await _make_profile(session_factory, "ops@example.com", UserRole.ADMIN)


@pytest.fixture
def customer_actor(customer) -> Actor:
    return Actor.from_profile(customer)


@pytest.fixture
def admin_actor(admin) -> Actor:
    return Actor.from_profile(admin)


# =============================================================================
# Reference data
# =============================================================================

@pytest_asyncio.fixture
async def rates(session_factory, admin):
    """USDT quotes for MXN and PEN, plus a direct COP/VES row."""
    rows = {
        "USDT/MXN": Decimal("17.5"),
        "USDT/PEN": Decimal("3.75"),
        "COP/VES": Decimal("0.01"),
    }
    async with session_factory() as session:
        for pair, rate in rows.items():
            session.add(ExchangeRate(
                currency_pair=pair,
                provider_rate=rate,
                profit_margin=Decimal("0"),
                our_rate=rate,
                updated_by=admin.id,
            ))
        await session.commit()
    return rows


async def _insert_binance_account(
    session_factory,
    user: Profile,
    verified: bool = False,
    binance_id: str = "123456789",
) -> SavedAccount:
    async with session_factory() as session:
        account = SavedAccount(
            user_id=user.id,
            type=SavedAccountType.BINANCE,
            details={"binance_id": binance_id, "binance_email": f"{binance_id}@example.com"},
            usdt_enabled=verified,
            verified_at=utcnow() if verified else None,
        )
        session.add(account)
        await session.commit()
        await session.refresh(account)
        return account


async def _insert_transfer(
    session_factory,
    user: Profile,
    status: TransferStatus = TransferStatus.PENDING,
    kind: Optional[TransferKind] = None,
    destination_currency: str = "MXN",
    **extra: Any,
) -> Transfer:
    """Insert a transfer directly in a given status."""
    if kind is None:
        if status == TransferStatus.PENDING_CARDLESS:
            kind = TransferKind.CARDLESS
        elif destination_currency == "USDT":
            kind = TransferKind.STABLECOIN
        else:
            kind = TransferKind.BANK_OR_CARD
    if kind == TransferKind.STABLECOIN:
        extra.setdefault("destination_type", DestinationType.BINANCE)
        extra.setdefault("destination_details", {"binance_id": "123456789", "binance_email": "a@b.com"})
    elif kind == TransferKind.BANK_OR_CARD:
        extra.setdefault("destination_type", DestinationType.CLABE)
        extra.setdefault("destination_details", {"clabe": "012345678901234567"})

    async with session_factory() as session:
        transfer = Transfer(
            user_id=user.id,
            kind=kind,
            status=status,
            amount=Decimal("100"),
            origin_currency="USDT" if destination_currency != "USDT" else "MXN",
            destination_currency=destination_currency,
            exchange_rate=Decimal("17.5"),
            destination_amount=Decimal("1750"),
            **extra,
        )
        session.add(transfer)
        await session.commit()
        await session.refresh(transfer)
        return transfer


@pytest.fixture
def make_binance_account(session_factory):
    """``await make_binance_account(user, verified=True)``"""
    async def _make(user: Profile, **kwargs) -> SavedAccount:
        return await _insert_binance_account(session_factory, user, **kwargs)
    return _make


@pytest.fixture
def make_transfer(session_factory):
    """``await make_transfer(user, status=..., destination_currency=...)``"""
    async def _make(user: Profile, **kwargs) -> Transfer:
        return await _insert_transfer(session_factory, user, **kwargs)
    return _make

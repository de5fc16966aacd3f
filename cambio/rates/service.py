"""Exchange rate service: reading the rate table, converting, and admin edits."""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.audit.services import AuditService
from cambio.auth.actor import Actor, ensure_admin
from cambio.currencies import is_supported, make_pair
from cambio.errors import NotFoundError, ValidationError, store_errors
from cambio.models.exchange_rate import ExchangeRate
from cambio.rates.calculator import (
    Conversion,
    EditedField,
    RateFigures,
    apply_rate_edit,
    convert,
)
from cambio.rates.resolver import RateResolver

logger = logging.getLogger(__name__)


def check_currency(code: str, label: str = "currency") -> None:
    if not is_supported(code):
        raise ValidationError(f"Unsupported {label}: {code}")


class ExchangeRateService:
    """
    Reads and maintains the ``exchange_rates`` table.

    Every read builds a fresh ``RateResolver`` from the current rows, so
    conversions always reflect the latest committed rates.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_rates(self, base_currency: Optional[str] = None) -> List[ExchangeRate]:
        """All rate rows, optionally only those quoted from ``base_currency``."""
        query = select(ExchangeRate).order_by(ExchangeRate.currency_pair.asc())
        if base_currency:
            query = query.where(ExchangeRate.currency_pair.startswith(f"{base_currency}/"))

        async with store_errors(self.db):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def get_resolver(self) -> RateResolver:
        return RateResolver.from_rows(await self.list_rates())

    async def compute_conversion(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
    ) -> Optional[Conversion]:
        """
        Destination amount and rate for ``amount`` of ``from_currency``.

        Returns None when no direct, inverse or hub-routed rate exists.
        """
        check_currency(from_currency, "origin currency")
        check_currency(to_currency, "destination currency")
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")

        if from_currency == to_currency:
            return convert(amount, from_currency, to_currency, RateResolver({}))

        resolver = await self.get_resolver()
        return convert(amount, from_currency, to_currency, resolver)

    async def create_rate(
        self,
        actor: Actor,
        from_currency: str,
        to_currency: str,
        provider_rate: Decimal,
        profit_margin: Decimal = Decimal("0"),
    ) -> ExchangeRate:
        """Create the quote row for an ordered pair. Admin only."""
        ensure_admin(actor, "manage exchange rates")
        check_currency(from_currency)
        check_currency(to_currency)
        if from_currency == to_currency:
            raise ValidationError("A rate needs two different currencies")

        figures = RateFigures.from_provider(Decimal(str(provider_rate)), Decimal(str(profit_margin)))
        pair = make_pair(from_currency, to_currency)

        async with store_errors(self.db, conflict_message=f"A rate for {pair} already exists"):
            rate = ExchangeRate(
                currency_pair=pair,
                provider_rate=figures.provider_rate,
                profit_margin=figures.profit_margin,
                our_rate=figures.our_rate,
                updated_by=actor.id,
            )
            self.db.add(rate)
            await self.db.flush()
            await AuditService(self.db, actor.id, "admin").log_create(
                "exchange_rate",
                rate.id,
                {"currency_pair": pair, "provider_rate": str(figures.provider_rate),
                 "profit_margin": str(figures.profit_margin), "our_rate": str(figures.our_rate)},
            )
            await self.db.commit()
            await self.db.refresh(rate)

        logger.info(f"Rate {pair} created by {actor.id}: our_rate={figures.our_rate}")
        return rate

    async def edit_rate(
        self,
        actor: Actor,
        rate_id: str,
        field: EditedField,
        value: Decimal,
    ) -> ExchangeRate:
        """
        Edit one figure of a rate row and recompute the dependent ones.

        The row is locked for the read-modify-write so a concurrent edit of
        another figure cannot be lost.
        """
        ensure_admin(actor, "manage exchange rates")

        async with store_errors(self.db):
            result = await self.db.execute(
                select(ExchangeRate).where(ExchangeRate.id == rate_id).with_for_update()
            )
            rate = result.scalar_one_or_none()
            if not rate:
                raise NotFoundError("Exchange rate not found")

            before = RateFigures(
                provider_rate=Decimal(str(rate.provider_rate)),
                profit_margin=Decimal(str(rate.profit_margin)),
                our_rate=Decimal(str(rate.our_rate)),
            )
            after = apply_rate_edit(before, field, value)

            rate.provider_rate = after.provider_rate
            rate.profit_margin = after.profit_margin
            rate.our_rate = after.our_rate
            rate.updated_by = actor.id

            await AuditService(self.db, actor.id, "admin").log_update(
                "exchange_rate",
                rate.id,
                {
                    "provider_rate": (str(before.provider_rate), str(after.provider_rate)),
                    "profit_margin": (str(before.profit_margin), str(after.profit_margin)),
                    "our_rate": (str(before.our_rate), str(after.our_rate)),
                },
                notes=f"edited {EditedField(field).value}",
            )
            await self.db.commit()
            await self.db.refresh(rate)

        logger.info(f"Rate {rate.currency_pair} edited by {actor.id}: {EditedField(field).value}={value}")
        return rate

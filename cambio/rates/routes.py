"""Exchange rate and currency routes."""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cambio.auth.actor import Actor
from cambio.auth.dependencies import get_current_actor
from cambio.currencies import CURRENCIES
from cambio.database import get_db
from cambio.rates.schemas import (
    ConversionResponse,
    CurrencyResponse,
    ExchangeRateCreate,
    ExchangeRateEdit,
    ExchangeRateResponse,
)
from cambio.rates.service import ExchangeRateService

router = APIRouter(tags=["rates"])


@router.get("/currencies", response_model=List[CurrencyResponse])
async def list_currencies():
    """Supported currencies with display metadata."""
    return [CurrencyResponse(**c.__dict__) for c in CURRENCIES]


@router.get("/rates", response_model=List[ExchangeRateResponse])
async def list_rates(
    base_currency: Optional[str] = Query(None, description="Only pairs quoted from this currency"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ExchangeRateService(db).list_rates(base_currency)


@router.get("/rates/convert", response_model=ConversionResponse)
async def convert_amount(
    amount: Decimal = Query(..., gt=0),
    from_currency: str = Query(...),
    to_currency: str = Query(...),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Quote a conversion with the current rate table.

    ``available`` is false when no direct, inverse or USDT-routed rate exists.
    """
    conversion = await ExchangeRateService(db).compute_conversion(amount, from_currency, to_currency)
    if conversion is None:
        return ConversionResponse(
            amount=amount, from_currency=from_currency, to_currency=to_currency, available=False
        )

    return ConversionResponse(
        amount=amount,
        from_currency=from_currency,
        to_currency=to_currency,
        rate=conversion.rate,
        destination_amount=conversion.amount,
        route=conversion.route,
        available=True,
    )


@router.post("/rates", response_model=ExchangeRateResponse, status_code=201)
async def create_rate(
    data: ExchangeRateCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ExchangeRateService(db).create_rate(
        actor, data.from_currency, data.to_currency, data.provider_rate, data.profit_margin
    )


@router.patch("/rates/{rate_id}", response_model=ExchangeRateResponse)
async def edit_rate(
    rate_id: str,
    data: ExchangeRateEdit,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Edit provider rate, margin or our rate; the dependent figures follow."""
    return await ExchangeRateService(db).edit_rate(actor, rate_id, data.field, data.value)

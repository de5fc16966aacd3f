"""Exchange rate schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from cambio.rates.calculator import EditedField
from cambio.rates.resolver import RateRoute


class CurrencyResponse(BaseModel):
    code: str
    display_name: str
    symbol: str
    flag: str


class ExchangeRateResponse(BaseModel):
    id: str
    currency_pair: str
    from_currency: str
    to_currency: str
    provider_rate: Decimal
    profit_margin: Decimal
    our_rate: Decimal
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExchangeRateCreate(BaseModel):
    from_currency: str
    to_currency: str
    provider_rate: Decimal = Field(gt=0)
    profit_margin: Decimal = Decimal("0")  # Fraction, 0.02 = 2%


class ExchangeRateEdit(BaseModel):
    """Exactly one figure is edited; the other two are recomputed from it."""
    field: EditedField
    value: Decimal


class ConversionResponse(BaseModel):
    amount: Decimal
    from_currency: str
    to_currency: str
    rate: Optional[Decimal] = None
    destination_amount: Optional[Decimal] = None
    route: Optional[RateRoute] = None
    available: bool

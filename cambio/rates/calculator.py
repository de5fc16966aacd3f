"""
Conversion arithmetic and the rate-row edit rules.

A rate row carries three mutually-derived figures. Admins edit one of them at
a time and the others follow:

- editing ``provider_rate`` or ``profit_margin`` recomputes ``our_rate``;
- editing ``our_rate`` recomputes ``profit_margin`` and keeps ``provider_rate``.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Optional

from cambio.errors import ValidationError
from cambio.rates.resolver import RateResolver, RateRoute


@dataclass(frozen=True)
class Conversion:
    amount: Decimal  # destination amount
    rate: Decimal
    route: Optional[RateRoute] = None  # None for same-currency conversions


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    resolver: RateResolver,
) -> Optional[Conversion]:
    """Apply the resolved rate to ``amount``; None when no rate resolves."""
    if from_currency == to_currency:
        return Conversion(amount=amount, rate=Decimal(1))

    resolved = resolver.resolve_route(from_currency, to_currency)
    if resolved is None:
        return None
    return Conversion(amount=amount * resolved.rate, rate=resolved.rate, route=resolved.route)


class EditedField(str, Enum):
    PROVIDER_RATE = "provider_rate"
    PROFIT_MARGIN = "profit_margin"
    OUR_RATE = "our_rate"


@dataclass(frozen=True)
class RateFigures:
    provider_rate: Decimal
    profit_margin: Decimal
    our_rate: Decimal

    @classmethod
    def from_provider(cls, provider_rate: Decimal, profit_margin: Decimal) -> "RateFigures":
        _check_provider_rate(provider_rate)
        _check_margin(profit_margin)
        return cls(provider_rate, profit_margin, provider_rate * (1 + profit_margin))


def _check_provider_rate(value: Decimal) -> None:
    if value <= 0:
        raise ValidationError("Provider rate must be greater than zero")


def _check_margin(value: Decimal) -> None:
    if value <= -1:
        raise ValidationError("Profit margin must be greater than -100%")


def _edit_provider_rate(figures: RateFigures, value: Decimal) -> RateFigures:
    _check_provider_rate(value)
    return replace(figures, provider_rate=value, our_rate=value * (1 + figures.profit_margin))


def _edit_profit_margin(figures: RateFigures, value: Decimal) -> RateFigures:
    _check_margin(value)
    return replace(figures, profit_margin=value, our_rate=figures.provider_rate * (1 + value))


def _edit_our_rate(figures: RateFigures, value: Decimal) -> RateFigures:
    if value <= 0:
        raise ValidationError("Our rate must be greater than zero")
    _check_provider_rate(figures.provider_rate)
    return replace(figures, our_rate=value, profit_margin=(value / figures.provider_rate) - 1)


_RECOMPUTE: Dict[EditedField, Callable[[RateFigures, Decimal], RateFigures]] = {
    EditedField.PROVIDER_RATE: _edit_provider_rate,
    EditedField.PROFIT_MARGIN: _edit_profit_margin,
    EditedField.OUR_RATE: _edit_our_rate,
}


def apply_rate_edit(figures: RateFigures, field: EditedField, value: Decimal) -> RateFigures:
    """Set ``field`` to ``value`` and recompute whatever depends on it."""
    return _RECOMPUTE[EditedField(field)](figures, Decimal(str(value)))

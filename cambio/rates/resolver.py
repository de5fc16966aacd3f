"""
Rate resolution between any two supported currencies.

Resolution order for FROM -> TO:
1. the stored FROM/TO row;
2. the inverse of the stored TO/FROM row;
3. FROM -> HUB -> TO, when neither side is the hub and both legs resolve.

Only one intermediate hop is ever attempted.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple

from cambio.currencies import HUB_CURRENCY, make_pair


class RateRoute(str, Enum):
    DIRECT = "direct"
    INVERSE = "inverse"
    HUB = "hub"


@dataclass(frozen=True)
class ResolvedRate:
    rate: Decimal
    route: RateRoute


class RateResolver:
    """
    Pure resolver over a snapshot of ``{currency_pair: our_rate}``.

    Build a new resolver from the current rate rows for every request; the
    rate table may change between calls.
    """

    def __init__(self, rates: Mapping[str, Decimal], hub: str = HUB_CURRENCY):
        # Non-positive quotes cannot be used or inverted
        self._rates: Dict[str, Decimal] = {
            pair: Decimal(str(rate)) for pair, rate in rates.items() if rate is not None and Decimal(str(rate)) > 0
        }
        self.hub = hub

    @classmethod
    def from_rows(cls, rows: Iterable, hub: str = HUB_CURRENCY) -> "RateResolver":
        """Build from objects exposing ``currency_pair`` and ``our_rate``."""
        return cls({row.currency_pair: row.our_rate for row in rows}, hub=hub)

    def resolve(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """Multiplier such that ``amount_in * rate == amount_out``, or None."""
        resolved = self.resolve_route(from_currency, to_currency)
        return resolved.rate if resolved else None

    def resolve_route(self, from_currency: str, to_currency: str) -> Optional[ResolvedRate]:
        if from_currency == to_currency:
            raise ValueError("Cannot resolve a rate between a currency and itself")
        memo: Dict[Tuple[str, str], Optional[ResolvedRate]] = {}
        return self._resolve(from_currency, to_currency, memo)

    def _resolve(
        self,
        from_currency: str,
        to_currency: str,
        memo: Dict[Tuple[str, str], Optional[ResolvedRate]],
    ) -> Optional[ResolvedRate]:
        key = (from_currency, to_currency)
        if key in memo:
            return memo[key]

        resolved = None
        direct = self._rates.get(make_pair(from_currency, to_currency))
        if direct is not None:
            resolved = ResolvedRate(direct, RateRoute.DIRECT)
        else:
            inverse = self._rates.get(make_pair(to_currency, from_currency))
            if inverse is not None:
                resolved = ResolvedRate(Decimal(1) / inverse, RateRoute.INVERSE)
            elif self.hub not in (from_currency, to_currency):
                # Both legs touch the hub, so they never recurse further
                to_hub = self._resolve(from_currency, self.hub, memo)
                from_hub = self._resolve(self.hub, to_currency, memo)
                if to_hub and from_hub:
                    resolved = ResolvedRate(to_hub.rate * from_hub.rate, RateRoute.HUB)

        memo[key] = resolved
        return resolved

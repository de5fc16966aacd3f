"""Supported currencies and their display metadata."""
from dataclasses import dataclass
from typing import Dict, List

# Stablecoin used as the routing hub for indirect quotes
HUB_CURRENCY = "USDT"
STABLECOIN = HUB_CURRENCY


@dataclass(frozen=True)
class Currency:
    code: str
    display_name: str
    symbol: str
    flag: str = ""


CURRENCIES: List[Currency] = [
    Currency("USDT", "USDT", "$", "💵"),
    Currency("MXN", "Mexican Peso", "$", "🇲🇽"),
    Currency("PEN", "Peruvian Sol", "S/", "🇵🇪"),
    Currency("COP", "Colombian Peso", "$", "🇨🇴"),
    Currency("VES", "Venezuelan Bolívar", "Bs.", "🇻🇪"),
]

_BY_CODE: Dict[str, Currency] = {c.code: c for c in CURRENCIES}


def is_supported(code: str) -> bool:
    return code in _BY_CODE


def make_pair(from_currency: str, to_currency: str) -> str:
    """Ordered pair key as stored on exchange rate rows, e.g. ``USDT/MXN``."""
    return f"{from_currency}/{to_currency}"


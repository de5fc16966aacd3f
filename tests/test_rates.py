"""
Tests for rate resolution, conversion and rate-row edits.

Pure modules; no database involved.
"""

import pytest
from decimal import Decimal

from cambio.errors import ValidationError
from cambio.rates.calculator import (
    EditedField,
    RateFigures,
    apply_rate_edit,
    convert,
)
from cambio.rates.resolver import RateResolver, RateRoute


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def resolver():
    return RateResolver({
        "USDT/MXN": Decimal("17.5"),
        "USDT/PEN": Decimal("3.75"),
        "COP/VES": Decimal("0.01"),
    })


# =============================================================================
# RateResolver
# =============================================================================

class TestRateResolver:
    """Direct, inverse and hub-routed lookups."""

    def test_direct_rate(self, resolver):
        """A stored FROM/TO row is used as is."""
        resolved = resolver.resolve_route("USDT", "MXN")

        assert resolved.rate == Decimal("17.5")
        assert resolved.route == RateRoute.DIRECT

    def test_inverse_rate(self, resolver):
        """Only TO/FROM stored: its reciprocal is used."""
        resolved = resolver.resolve_route("MXN", "USDT")

        assert resolved.rate == Decimal(1) / Decimal("17.5")
        assert resolved.route == RateRoute.INVERSE

    def test_hub_rate_through_usdt(self, resolver):
        """MXN -> PEN goes MXN -> USDT -> PEN."""
        resolved = resolver.resolve_route("MXN", "PEN")

        assert resolved.route == RateRoute.HUB
        assert resolved.rate == (Decimal(1) / Decimal("17.5")) * Decimal("3.75")

    def test_direct_wins_over_hub(self):
        """A stored row is preferred even when a hub route exists."""
        resolver = RateResolver({
            "MXN/PEN": Decimal("0.2"),
            "USDT/MXN": Decimal("17.5"),
            "USDT/PEN": Decimal("3.75"),
        })

        assert resolver.resolve("MXN", "PEN") == Decimal("0.2")

    def test_unresolvable_pair(self, resolver):
        """No row, no inverse, and no hub legs: None."""
        assert resolver.resolve("COP", "MXN") is None

    def test_hub_is_never_chained_twice(self):
        """Legs to and from the hub must each be direct or inverse."""
        resolver = RateResolver({"COP/VES": Decimal("0.01"), "VES/USDT": Decimal("0.03")})

        # COP -> USDT would need COP -> VES -> USDT
        assert resolver.resolve("COP", "USDT") is None

    def test_non_positive_rates_are_ignored(self):
        resolver = RateResolver({"USDT/MXN": Decimal("0"), "USDT/PEN": Decimal("-1")})

        assert resolver.resolve("MXN", "USDT") is None
        assert resolver.resolve("USDT", "PEN") is None

    def test_same_currency_is_rejected(self, resolver):
        with pytest.raises(ValueError):
            resolver.resolve("MXN", "MXN")

    def test_from_rows(self):
        """Rows only need ``currency_pair`` and ``our_rate``."""
        class Row:
            def __init__(self, pair, rate):
                self.currency_pair = pair
                self.our_rate = rate

        resolver = RateResolver.from_rows([Row("USDT/MXN", Decimal("17.5"))])

        assert resolver.resolve("USDT", "MXN") == Decimal("17.5")


# =============================================================================
# Conversion
# =============================================================================

class TestConvert:

    def test_same_currency_is_identity(self, resolver):
        conversion = convert(Decimal("250"), "MXN", "MXN", resolver)

        assert conversion.rate == Decimal(1)
        assert conversion.amount == Decimal("250")

    def test_amount_times_rate(self, resolver):
        conversion = convert(Decimal("100"), "USDT", "MXN", resolver)

        assert conversion.amount == Decimal("1750.0")

    def test_unresolved_returns_none(self, resolver):
        assert convert(Decimal("100"), "COP", "PEN", resolver) is None

    @pytest.mark.parametrize("origin,destination,route", [
        ("USDT", "MXN", RateRoute.DIRECT),
        ("MXN", "USDT", RateRoute.INVERSE),
        ("MXN", "PEN", RateRoute.HUB),
    ])
    def test_route_comes_with_the_rate(self, resolver, origin, destination, route):
        conversion = convert(Decimal("100"), origin, destination, resolver)

        assert conversion.route == route
        assert conversion.rate == resolver.resolve(origin, destination)

    def test_same_currency_has_no_route(self, resolver):
        assert convert(Decimal("1"), "PEN", "PEN", resolver).route is None


# =============================================================================
# Rate-row edits
# =============================================================================

class TestRateEdits:
    """Editing one figure recomputes the dependent ones."""

    @pytest.fixture
    def figures(self):
        return RateFigures.from_provider(Decimal("17"), Decimal("0.02"))

    def test_from_provider_derives_our_rate(self, figures):
        assert figures.our_rate == Decimal("17.34")

    def test_edit_provider_rate_keeps_margin(self, figures):
        after = apply_rate_edit(figures, EditedField.PROVIDER_RATE, Decimal("18"))

        assert after.provider_rate == Decimal("18")
        assert after.profit_margin == Decimal("0.02")
        assert after.our_rate == Decimal("18.36")

    def test_edit_margin_keeps_provider_rate(self, figures):
        after = apply_rate_edit(figures, EditedField.PROFIT_MARGIN, Decimal("0.05"))

        assert after.provider_rate == Decimal("17")
        assert after.our_rate == Decimal("17.85")

    def test_edit_our_rate_derives_margin(self, figures):
        after = apply_rate_edit(figures, EditedField.OUR_RATE, Decimal("17.85"))

        assert after.provider_rate == Decimal("17")
        assert after.profit_margin == Decimal("0.05")

    def test_field_accepts_plain_string(self, figures):
        after = apply_rate_edit(figures, "profit_margin", "0")

        assert after.our_rate == Decimal("17")

    @pytest.mark.parametrize("field,value", [
        (EditedField.PROVIDER_RATE, Decimal("0")),
        (EditedField.PROFIT_MARGIN, Decimal("-1")),
        (EditedField.OUR_RATE, Decimal("-3")),
    ])
    def test_invalid_values_are_rejected(self, figures, field, value):
        with pytest.raises(ValidationError):
            apply_rate_edit(figures, field, value)

"""
Tests for currency conversion and formatting.
"""

from decimal import Decimal

import pytest

from secure_retire.currency import (
    CurrencyConverter,
    CurrencyError,
    currency_for_country,
    currency_symbol,
    format_amount,
    format_localized,
    normalize_code,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestFormatting:
    """Display helpers."""

    def test_format_amount(self):
        """Test symbol, separators and unknown codes."""
        assert format_amount(1234.5, "USD") == "$1,234.50"
        assert format_amount(Decimal("2500000"), "lkr") == "Rs2,500,000.00"
        assert format_amount(1234.5, "XYZ") == "1234.50 XYZ"

    def test_format_localized(self):
        """Test Babel formatting and the unknown-locale fallback."""
        assert format_localized(1234.5, "USD") == "$1,234.50"
        assert format_localized(1234.5, "EUR", locale="zz") == "€1,234.50"

    def test_symbol(self):
        """Test symbol lookup falls back to the code."""
        assert currency_symbol("gbp") == "£"
        assert currency_symbol("INR") == "INR"

    def test_country_currency(self):
        """Test default currency per country."""
        assert currency_for_country("LK") == "LKR"
        assert currency_for_country("de") == "EUR"
        assert currency_for_country("ZZ") == "USD"
        assert currency_for_country("") == "USD"

    def test_normalize_code(self):
        """Test codes are trimmed, upper-cased and checked."""
        assert normalize_code(" eur ") == "EUR"
        with pytest.raises(CurrencyError):
            normalize_code("EURO")
        with pytest.raises(ValueError):
            normalize_code("12A")


class TestCurrencyConverter:
    """Conversion through USD and the rate cache."""

    def test_convert_through_usd(self):
        """Test conversions use the built-in table by default."""
        converter = CurrencyConverter()
        assert converter.convert(100, "USD", "LKR") == Decimal("32000")
        assert converter.convert(32000, "LKR", "EUR") == Decimal("85")
        assert converter.convert(50, "EUR", "USD").quantize(Decimal("0.01")) == Decimal("58.82")

    def test_same_currency_is_identity(self):
        """Test no rate lookup for same-currency conversion."""
        assert CurrencyConverter().convert("12.34", "usd", "USD") == Decimal("12.34")

    def test_unknown_currency_rate_is_one(self):
        """Test a currency missing from the table converts at 1."""
        converter = CurrencyConverter()
        assert converter.rate("XYZ") == 1.0
        assert converter.convert(10, "USD", "XYZ") == Decimal("10")

    def test_convert_and_format(self):
        """Test the combined helper."""
        assert CurrencyConverter().convert_and_format(10, "USD", "LKR") == "Rs3,200.00"

    def test_refresh_caches_for_an_hour(self):
        """Test fresh rates are not fetched again."""
        clock = FakeClock()
        calls = []

        def provider():
            calls.append(clock.now)
            return {"lkr": 300}

        converter = CurrencyConverter(provider=provider, clock=clock)
        assert converter.refresh()["LKR"] == 300.0
        assert converter.rates["USD"] == 1.0
        clock.now += 1800
        converter.refresh()
        assert len(calls) == 1

        clock.now += 3600
        converter.refresh()
        assert len(calls) == 2
        assert converter.last_updated == clock.now

    def test_provider_failure_keeps_stale_rates(self):
        """Test a failing provider keeps rates within the stale window."""
        clock = FakeClock()
        state = {"fail": False}

        def provider():
            if state["fail"]:
                raise ConnectionError("rates service down")
            return {"LKR": 300}

        converter = CurrencyConverter(provider=provider, clock=clock)
        converter.refresh()
        state["fail"] = True

        clock.now += 7200
        assert converter.refresh()["LKR"] == 300.0

        clock.now += 86400
        assert converter.refresh()["LKR"] == 320.0

    def test_force_refresh(self):
        """Test force bypasses the cache."""
        calls = []

        def provider():
            calls.append(1)
            return {"EUR": 0.9}

        converter = CurrencyConverter(provider=provider, clock=FakeClock())
        converter.refresh()
        converter.refresh(force=True)
        assert len(calls) == 2

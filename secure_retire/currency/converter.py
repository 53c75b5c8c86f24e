"""
Currency Conversion and Formatting

Rates are quoted per US dollar and every conversion goes through USD.
A provider supplies fresh rates; the converter caches them for an hour
and keeps using a stale table for up to a day if the provider fails,
after which the built-in table applies.

Locale-aware display uses Babel; the compact symbol format matches what
the dashboard cards show.
"""

import time
from decimal import Decimal
from typing import Callable, Optional, Union

import structlog
from babel.core import UnknownLocaleError
from babel.numbers import UnknownCurrencyError, format_currency
from pydantic import BaseModel

from secure_retire.config import get_settings


logger = structlog.get_logger(__name__)

Number = Union[int, float, Decimal]

BASE_CURRENCY = "USD"

STATIC_RATES: dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.85,
    "GBP": 0.73,
    "JPY": 110.0,
    "CAD": 1.25,
    "AUD": 1.35,
    "CHF": 0.92,
    "CNY": 6.45,
    "LKR": 320.0,
    "INR": 83.0,
    "PKR": 280.0,
    "BDT": 110.0,
    "MYR": 4.7,
    "SGD": 1.35,
    "THB": 36.0,
    "IDR": 15500.0,
    "PHP": 56.0,
    "VND": 24000.0,
}


class CurrencyInfo(BaseModel):
    code: str
    symbol: str
    name: str


class Country(BaseModel):
    code: str
    name: str
    currency: str


SUPPORTED_CURRENCIES: list[CurrencyInfo] = [
    CurrencyInfo(code="LKR", symbol="Rs", name="Sri Lankan Rupee"),
    CurrencyInfo(code="USD", symbol="$", name="US Dollar"),
    CurrencyInfo(code="EUR", symbol="€", name="Euro"),
    CurrencyInfo(code="GBP", symbol="£", name="British Pound"),
    CurrencyInfo(code="JPY", symbol="¥", name="Japanese Yen"),
    CurrencyInfo(code="CAD", symbol="C$", name="Canadian Dollar"),
    CurrencyInfo(code="AUD", symbol="A$", name="Australian Dollar"),
    CurrencyInfo(code="CHF", symbol="CHF", name="Swiss Franc"),
    CurrencyInfo(code="CNY", symbol="¥", name="Chinese Yuan"),
]

COUNTRIES: list[Country] = [
    Country(code="LK", name="Sri Lanka", currency="LKR"),
    Country(code="US", name="United States", currency="USD"),
    Country(code="CA", name="Canada", currency="CAD"),
    Country(code="GB", name="United Kingdom", currency="GBP"),
    Country(code="AU", name="Australia", currency="AUD"),
    Country(code="DE", name="Germany", currency="EUR"),
    Country(code="FR", name="France", currency="EUR"),
    Country(code="ES", name="Spain", currency="EUR"),
    Country(code="IT", name="Italy", currency="EUR"),
    Country(code="JP", name="Japan", currency="JPY"),
    Country(code="CN", name="China", currency="CNY"),
    Country(code="IN", name="India", currency="INR"),
    Country(code="PK", name="Pakistan", currency="PKR"),
    Country(code="BD", name="Bangladesh", currency="BDT"),
    Country(code="MY", name="Malaysia", currency="MYR"),
    Country(code="SG", name="Singapore", currency="SGD"),
    Country(code="TH", name="Thailand", currency="THB"),
    Country(code="ID", name="Indonesia", currency="IDR"),
    Country(code="PH", name="Philippines", currency="PHP"),
    Country(code="VN", name="Vietnam", currency="VND"),
]

_CURRENCY_BY_CODE = {c.code: c for c in SUPPORTED_CURRENCIES}
_COUNTRY_BY_CODE = {c.code: c for c in COUNTRIES}


class CurrencyError(ValueError):
    """Malformed currency code."""
    pass


def normalize_code(code: str) -> str:
    code = (code or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise CurrencyError(f"Invalid currency code: {code!r}")
    return code


def currency_for_country(country_code: str) -> str:
    """Default currency of a country, USD when unknown."""
    country = _COUNTRY_BY_CODE.get((country_code or "").upper())
    return country.currency if country else get_settings().app.default_currency


def currency_symbol(code: str) -> str:
    info = _CURRENCY_BY_CODE.get(code.upper())
    return info.symbol if info else code


def format_amount(amount: Number, code: str) -> str:
    """
    Compact display: symbol, thousands separators, two decimals.

    Unknown currencies render as "1234.50 XYZ".
    """
    info = _CURRENCY_BY_CODE.get(code.upper())
    if info is None:
        return f"{float(amount):.2f} {code}"
    return f"{info.symbol}{float(amount):,.2f}"


def format_localized(amount: Number, code: str, locale: str = "en_US") -> str:
    """Locale-aware formatting; falls back to format_amount for unknown locales or codes."""
    try:
        return format_currency(Decimal(str(amount)), code.upper(), locale=locale)
    except (UnknownLocaleError, UnknownCurrencyError, ValueError):
        return format_amount(amount, code)


RateProvider = Callable[[], dict[str, float]]


def static_rate_provider() -> dict[str, float]:
    return dict(STATIC_RATES)


class CurrencyConverter:
    """
    Converts amounts between currencies using cached USD-based rates.

    The clock is injectable so cache expiry can be tested without sleeping.
    """

    def __init__(
        self,
        provider: Optional[RateProvider] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = get_settings().app
        self._provider = provider or static_rate_provider
        self._clock = clock
        self._fresh_for = settings.exchange_rate_cache_seconds
        self._usable_for = settings.exchange_rate_max_stale_seconds
        self._rates: dict[str, float] = dict(STATIC_RATES)
        self._fetched_at: Optional[float] = None

    @property
    def rates(self) -> dict[str, float]:
        return dict(self._rates)

    @property
    def last_updated(self) -> Optional[float]:
        return self._fetched_at

    def is_fresh(self) -> bool:
        return (
            self._fetched_at is not None
            and self._clock() - self._fetched_at < self._fresh_for
        )

    def refresh(self, force: bool = False) -> dict[str, float]:
        """
        Fetch new rates unless the cached ones are still fresh.

        Provider failures keep the cached table while it is within the
        stale window, otherwise revert to the static table.
        """
        if not force and self.is_fresh():
            return self.rates

        try:
            fetched = self._provider()
        except Exception as e:
            logger.warning("exchange_rate_refresh_failed", error=str(e))
            if (
                self._fetched_at is None
                or self._clock() - self._fetched_at >= self._usable_for
            ):
                self._rates = dict(STATIC_RATES)
            return self.rates

        self._rates = {BASE_CURRENCY: 1.0, **{k.upper(): float(v) for k, v in fetched.items()}}
        self._fetched_at = self._clock()
        logger.info("exchange_rates_refreshed", currencies=len(self._rates))
        return self.rates

    def rate(self, code: str) -> float:
        """USD rate for code; unknown currencies count as 1."""
        return self._rates.get(code.upper(), 1.0) or 1.0

    def convert(self, amount: Number, from_code: str, to_code: str) -> Decimal:
        from_code = normalize_code(from_code)
        to_code = normalize_code(to_code)
        value = Decimal(str(amount))
        if from_code == to_code:
            return value

        usd = value
        if from_code != BASE_CURRENCY:
            usd = value / Decimal(str(self.rate(from_code)))
        if to_code == BASE_CURRENCY:
            return usd
        return usd * Decimal(str(self.rate(to_code)))

    def convert_and_format(self, amount: Number, from_code: str, to_code: str) -> str:
        return format_amount(self.convert(amount, from_code, to_code), to_code)

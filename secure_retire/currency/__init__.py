"""Currency rates, conversion and display formatting."""

from secure_retire.currency.converter import (
    BASE_CURRENCY,
    COUNTRIES,
    STATIC_RATES,
    SUPPORTED_CURRENCIES,
    Country,
    CurrencyConverter,
    CurrencyError,
    CurrencyInfo,
    currency_for_country,
    currency_symbol,
    format_amount,
    format_localized,
    normalize_code,
)

__all__ = [
    "BASE_CURRENCY",
    "COUNTRIES",
    "STATIC_RATES",
    "SUPPORTED_CURRENCIES",
    "Country",
    "CurrencyConverter",
    "CurrencyError",
    "CurrencyInfo",
    "currency_for_country",
    "currency_symbol",
    "format_amount",
    "format_localized",
    "normalize_code",
]

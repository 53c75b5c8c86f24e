"""UI language catalogs and dynamic text translation."""

from secure_retire.i18n.catalogs import BABEL_LOCALES, CATALOGS, SUPPORTED_LANGUAGES
from secure_retire.i18n.translator import (
    SOURCE_LANGUAGE,
    Translator,
    cache_key,
    normalize_language,
)

__all__ = [
    "BABEL_LOCALES",
    "CATALOGS",
    "SOURCE_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "Translator",
    "cache_key",
    "normalize_language",
]

"""
Translation Layer

Two kinds of text get translated:
1. Static UI strings, looked up in the bundled catalogs by dotted key
2. Dynamic content (insight text, notification bodies), sent to the
   translate-text edge function and cached in the translations table

DESIGN DECISION: Translation never blocks the UI. Any failure on the
dynamic path returns the original English text and logs a warning.
"""

from typing import Optional

import structlog

from secure_retire.config import get_settings
from secure_retire.currency import format_localized
from secure_retire.i18n.catalogs import (
    BABEL_LOCALES,
    CATALOGS,
    SUPPORTED_LANGUAGES,
    flatten,
)
from secure_retire.services.functions import EdgeFunctionClient, EdgeFunctionError
from secure_retire.services.storage import StorageError, TranslationStorageInterface


logger = structlog.get_logger(__name__)

SOURCE_LANGUAGE = "en"

_FLAT_CATALOGS: dict[str, dict[str, str]] = {
    code: flatten(tree) for code, tree in CATALOGS.items()
}


def normalize_language(language: Optional[str]) -> str:
    """Unknown or empty codes fall back to English."""
    code = (language or "").strip().lower()
    if code in SUPPORTED_LANGUAGES:
        return code
    # "es-ES" style tags
    base = code.split("-")[0].split("_")[0]
    return base if base in SUPPORTED_LANGUAGES else SOURCE_LANGUAGE


def cache_key(text: str, language: str) -> str:
    """Key used for the translations table."""
    return f"{text}-{SOURCE_LANGUAGE}-{language}"


class Translator:
    """
    Per-session translator.

    Usage:
        tr = Translator("es", translation_storage, functions)
        tr.t("nav.overview")                  # "Resumen"
        await tr.translate_text("Save more")  # machine translated
    """

    def __init__(
        self,
        language: Optional[str] = None,
        translation_storage: Optional[TranslationStorageInterface] = None,
        functions: Optional[EdgeFunctionClient] = None,
    ):
        self.language = normalize_language(
            language or get_settings().app.default_language
        )
        self._storage = translation_storage
        self._functions = functions
        self._memory: dict[str, str] = {}

    def set_language(self, language: str) -> str:
        self.language = normalize_language(language)
        return self.language

    @property
    def machine_translates(self) -> bool:
        """True when dynamic text would be sent to the translate-text function."""
        return self.language != SOURCE_LANGUAGE and self._functions is not None

    @property
    def language_name(self) -> str:
        return SUPPORTED_LANGUAGES[self.language]

    @property
    def locale(self) -> str:
        return BABEL_LOCALES[self.language]

    def t(self, key: str, fallback: Optional[str] = None) -> str:
        """
        Catalog lookup: active language, then English, then the
        fallback, then the key itself.
        """
        value = _FLAT_CATALOGS.get(self.language, {}).get(key)
        if value:
            return value
        value = _FLAT_CATALOGS[SOURCE_LANGUAGE].get(key)
        if value:
            return value
        return fallback if fallback is not None else key

    def format_currency(self, amount, currency: str) -> str:
        return format_localized(amount, currency, self.locale)

    async def translate_text(self, text: str, language: Optional[str] = None) -> str:
        """
        Machine-translate dynamic English text.

        Order: in-process cache, translations table, edge function.
        New translations are written back to both caches.
        """
        target = normalize_language(language or self.language)
        if target == SOURCE_LANGUAGE or not text.strip():
            return text

        key = cache_key(text, target)
        if key in self._memory:
            return self._memory[key]

        if self._storage is not None:
            try:
                cached = await self._storage.get_translation(key, target)
            except StorageError as e:
                logger.warning("translation_cache_read_failed", error=str(e))
                cached = None
            if cached:
                self._memory[key] = cached
                return cached

        if self._functions is None:
            return text

        try:
            translated = await self._functions.translate_text(
                text, target, source_language=SOURCE_LANGUAGE
            )
        except EdgeFunctionError as e:
            logger.warning("translation_failed", language=target, error=str(e))
            return text

        self._memory[key] = translated
        if self._storage is not None:
            try:
                await self._storage.save_translation(key, target, translated)
            except StorageError as e:
                logger.warning("translation_cache_write_failed", error=str(e))
        return translated

    async def translate_many(self, texts: list[str], language: Optional[str] = None) -> list[str]:
        return [await self.translate_text(text, language) for text in texts]

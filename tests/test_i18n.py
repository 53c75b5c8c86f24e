"""
Tests for UI catalogs and dynamic translation.
"""

from unittest.mock import AsyncMock

import pytest

from secure_retire.i18n import Translator
from secure_retire.i18n.catalogs import CATALOGS, flatten
from secure_retire.i18n.translator import cache_key, normalize_language
from secure_retire.services.functions import EdgeFunctionError
from secure_retire.services.storage import InMemoryTranslationStorage


class TestCatalogs:
    """Static string lookup."""

    def test_flatten(self):
        """Test nested keys become dotted paths."""
        assert flatten({"a": {"b": "x", "c": {"d": "y"}}}) == {"a.b": "x", "a.c.d": "y"}

    def test_every_language_has_navigation(self):
        """Test each catalog at least covers the overview entry."""
        for language, tree in CATALOGS.items():
            assert flatten(tree).get("nav.overview"), language

    def test_lookup_and_fallbacks(self):
        """Test active language, English, explicit fallback, then key."""
        tr = Translator("es")
        assert tr.t("nav.overview") == "Resumen"
        assert Translator("ja").t("nav.taxEstimator") == "Tax Estimator"
        assert tr.t("missing.key", "Default") == "Default"
        assert tr.t("missing.key") == "missing.key"

    def test_normalize_language(self):
        """Test region tags and unknown codes."""
        assert normalize_language("es-ES") == "es"
        assert normalize_language("SI") == "si"
        assert normalize_language("fr") == "en"
        assert normalize_language(None) == "en"

    def test_set_language_and_locale(self):
        """Test switching language updates the Babel locale."""
        tr = Translator("en")
        assert tr.set_language("ta") == "ta"
        assert tr.locale == "ta_LK"
        assert tr.language_name == "தமிழ்"

    def test_format_currency(self):
        """Test currency formatting follows the locale."""
        assert Translator("en").format_currency(1234.5, "USD") == "$1,234.50"


class TestDynamicTranslation:
    """Edge function translation with caching."""

    @pytest.mark.asyncio
    async def test_english_and_blank_untouched(self):
        """Test nothing is sent for English or empty text."""
        functions = AsyncMock()
        tr = Translator("es", functions=functions)
        assert await tr.translate_text("Save more", language="en") == "Save more"
        assert await tr.translate_text("   ") == "   "
        functions.translate_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_translates_and_caches(self):
        """Test the first call hits the function and later ones the caches."""
        functions = AsyncMock()
        functions.translate_text.return_value = "Ahorre más"
        storage = InMemoryTranslationStorage()
        tr = Translator("es", storage, functions)

        assert await tr.translate_text("Save more") == "Ahorre más"
        assert await tr.translate_text("Save more") == "Ahorre más"
        functions.translate_text.assert_awaited_once_with("Save more", "es", source_language="en")
        assert await storage.get_translation(cache_key("Save more", "es"), "es") == "Ahorre más"

        # A new session reads the translations table instead of calling out
        fresh = Translator("es", storage, functions)
        assert await fresh.translate_text("Save more") == "Ahorre más"
        assert functions.translate_text.await_count == 1

    @pytest.mark.asyncio
    async def test_failure_returns_original(self):
        """Test translation errors never reach the UI."""
        functions = AsyncMock()
        functions.translate_text.side_effect = EdgeFunctionError("translate-text", "quota exceeded")
        tr = Translator("si", functions=functions)
        assert await tr.translate_text("Save more") == "Save more"

    @pytest.mark.asyncio
    async def test_without_backend_returns_original(self):
        """Test offline sessions keep English text."""
        assert await Translator("zh").translate_text("Save more") == "Save more"

    @pytest.mark.asyncio
    async def test_translate_many(self):
        """Test batch translation keeps order."""
        functions = AsyncMock()
        functions.translate_text.side_effect = lambda text, target, source_language: f"[{target}] {text}"
        tr = Translator("ja", functions=functions)
        assert await tr.translate_many(["a", "b"]) == ["[ja] a", "[ja] b"]

    def test_cache_key(self):
        """Test the translations table key layout."""
        assert cache_key("Hello", "es") == "Hello-en-es"

"""
Configuration Management for Secure Retire

Every hosted service reads its own env prefix (SUPABASE_, MINDEE_,
GEMINI_); app-wide knobs have no prefix.

DESIGN DECISION: One place lists every external dependency. A service
whose variables are missing fails when first used, not at import, so
the offline demo runs with nothing configured.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Hosted backend (auth, tables, storage, edge functions)."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Project URL, e.g. https://xyz.supabase.co"
    )
    anon_key: str = Field(
        ...,
        description="Public anon key; row-level security does the rest"
    )
    documents_bucket: str = Field(
        default="documents",
        description="Storage bucket for uploaded documents"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("SUPABASE_URL must start with http:// or https://")
        return v.rstrip("/")


class MindeeSettings(BaseSettings):
    """Document OCR."""

    model_config = SettingsConfigDict(
        env_prefix="MINDEE_",
        env_file=".env",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="API key from the Mindee platform"
    )


class GeminiSettings(BaseSettings):
    """Dashboard insight model."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Google AI Studio key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Model id passed to GenerativeModel"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Output token cap per insight request"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Kept low so the model narrates rather than invents"
    )


class AppSettings(BaseSettings):
    """Limits, locale defaults, paywall pricing and refresh intervals."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="development, staging or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Show tracebacks and debug panels in the UI"
    )
    app_base_url: str = Field(
        default="http://localhost:8501",
        description="Where checkout redirects back to"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Per-file upload limit"
    )
    min_ocr_confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Below this, OCR text is kept but flagged for review"
    )

    # Locale defaults
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    default_country: str = Field(default="LK", min_length=2, max_length=2)
    default_language: str = Field(default="en")

    # Paywall
    free_plan_credits: int = Field(default=100, ge=0)
    low_credit_threshold: int = Field(default=10, ge=0)
    pro_plan_price_usd: float = Field(default=1.0, ge=0)
    pro_plan_price_lkr: float = Field(default=320.0, ge=0)

    # Background refresh
    notification_poll_seconds: int = Field(
        default=30,
        ge=5,
        description="Polling fallback interval for notifications"
    )
    renewal_reminder_days: int = Field(
        default=30,
        ge=1,
        description="Look-ahead window for document renewal reminders"
    )
    exchange_rate_cache_seconds: int = Field(
        default=3600,
        ge=60,
        description="How long fetched exchange rates count as fresh"
    )
    exchange_rate_max_stale_seconds: int = Field(
        default=86400,
        ge=60,
        description="How long stale rates may still be used"
    )

    @property
    def max_upload_size_bytes(self) -> int:
        """Upload limit in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """Root container; each property builds its sub-settings on access."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def mindee(self) -> MindeeSettings:
        return MindeeSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings. Tests call get_settings.cache_clear() after changing env vars."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Per-service configuration status for the settings page.

    Returns {name: ok} plus {name}_error with the message for failures.
    """
    results = {}

    settings = get_settings()

    for name in ("supabase", "mindee", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

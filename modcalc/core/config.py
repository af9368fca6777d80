"""Application configuration with environment variable validation."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (2 levels up from this file)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase
    supabase_url: str = Field(..., validation_alias="SUPABASE_URL")
    supabase_key: str = Field(..., validation_alias="SUPABASE_KEY")

    # AI notes (any OpenAI-compatible chat completions endpoint)
    mistral_api_key: str = Field(default="", validation_alias="MISTRAL_API_KEY")
    ai_base_url: str = Field(
        default="https://api.mistral.ai/v1",
        validation_alias="AI_BASE_URL",
    )
    ai_model: str = Field(default="mistral-medium-latest", validation_alias="AI_MODEL")
    ai_temperature: float = Field(default=0.2, validation_alias="AI_TEMPERATURE")
    ai_max_tokens: int = Field(default=300, validation_alias="AI_MAX_TOKENS")
    ai_timeout: float = Field(default=15.0, validation_alias="AI_TIMEOUT")

    # Usage plans
    default_plan: str = Field(default="FREE", validation_alias="DEFAULT_PLAN")

    # API settings
    allowed_origins: list[str] = Field(
        default=["http://localhost:3000"],
        validation_alias="ALLOWED_ORIGINS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Rate limiting (per client IP)
    rate_limit: str = Field(default="30/minute", validation_alias="RATE_LIMIT")
    rate_limit_enabled: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")

    # Vehicle picker cache
    catalog_cache_ttl: int = Field(default=600, validation_alias="CATALOG_CACHE_TTL")
    catalog_cache_size: int = Field(default=512, validation_alias="CATALOG_CACHE_SIZE")

    @property
    def cors_origins(self) -> list[str]:
        """Parse ALLOWED_ORIGINS from comma-separated string or return list."""
        if isinstance(self.allowed_origins, str):
            return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return self.allowed_origins

    @property
    def ai_enabled(self) -> bool:
        return bool(self.mistral_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()  # type: ignore[call-arg]


def validate_settings() -> None:
    """Validate that all required settings are present."""
    settings = get_settings()
    errors = []

    if not settings.supabase_url:
        errors.append("SUPABASE_URL is required")
    if not settings.supabase_key:
        errors.append("SUPABASE_KEY is required")
    if settings.ai_max_tokens <= 0:
        errors.append("AI_MAX_TOKENS must be positive")

    if errors:
        raise ValueError(f"Configuration errors: {'; '.join(errors)}")

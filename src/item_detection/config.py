"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    openai_api_key: str | None = None
    openai_api_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 30.0
    openai_connect_timeout_seconds: float = 10.0
    use_enhanced_prompt: bool = True
    detection_confidence_threshold: float = 0.85
    detection_cache_ttl_seconds: int = 3600
    redis_url: str | None = None
    budget_max_requests_per_hour: int = 300
    budget_max_requests_per_day: int = 3000
    budget_max_cost_per_day: float = 150.0
    budget_cost_per_image: float = 0.01
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def openai_configured(self) -> bool:
        """Return True when an OpenAI key is present."""
        return bool(self.openai_api_key and self.openai_api_key.strip())


def chat_completions_base_url(raw: str | None) -> str:
    """Normalize the configured OpenAI URL to an SDK base URL.

    Accepts either a base such as ``https://api.openai.com/v1`` or the full
    ``.../chat/completions`` endpoint.
    """
    base = (raw or "").strip() or "https://api.openai.com/v1"
    lower = base.lower()
    marker = "/chat/completions"
    if marker in lower:
        base = base[: lower.index(marker)]
    return base.rstrip("/")

# ABOUTME: Application configuration using Pydantic Settings for environment variables
# ABOUTME: Provides type-safe access to source, storage, AI provider, delivery, and logging settings

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INSTAGRAM_ACCOUNTS = [
    "infolomba.indonesia.id",
    "lomba_mahasiswa",
    "infolombaeventid",
    "infolombamahasiswa.id",
    "infolombaevent.id",
    "pusatinfolomba",
]


class Config(BaseSettings):
    """Application configuration with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="LOMBA_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown environment variables
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./lomba_relay.db", description="Database URL for async SQLAlchemy operations"
    )
    db_max_connections: int = Field(default=1, description="Maximum open connections per pipeline run")

    # Logging Configuration
    log_mode: Literal["interactive", "production"] = Field(default="interactive", description="Logging output mode")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging verbosity level"
    )

    log_file: Path | None = Field(default=None, description="Custom log file path (overrides default)")

    # Source Configuration
    enabled_sources: list[Literal["instagram", "infolombait", "infolombaid"]] = Field(
        default_factory=lambda: ["instagram", "infolombait", "infolombaid"],
        description="Sources scraped on each ingestion run",
    )
    source_timeout: float = Field(default=30.0, description="Timeout in seconds for HTML listing and detail pages")

    instagram_accounts: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INSTAGRAM_ACCOUNTS), description="Instagram accounts to scrape"
    )
    instagram_post_limit: int = Field(default=4, description="Maximum posts taken per Instagram account")
    instagram_max_retries: int = Field(default=2, description="Retries per account when rate limited")
    instagram_min_delay: float = Field(default=2.0, description="Minimum pause in seconds between accounts")
    instagram_max_delay: float = Field(default=5.0, description="Maximum pause in seconds between accounts")
    instagram_timeout: float = Field(default=10.0, description="Instagram request timeout in seconds")
    instagram_rate_limit_per_minute: int = Field(default=20, description="Instagram requests allowed per minute")
    instagram_app_id: str = Field(default="936619743392459", description="Instagram web app id header value")

    infolombait_url: str = Field(default="https://www.infolombait.com", description="infolombait.com base URL")
    infolombait_limit: int = Field(default=5, description="Maximum posts taken from infolombait.com")
    infolombaid_url: str = Field(default="https://infolomba.id", description="infolomba.id base URL")
    infolombaid_limit: int = Field(default=5, description="Maximum posts taken from infolomba.id")

    web_retry_base_delay: float = Field(default=5.0, description="Initial retry delay for HTML sources")
    web_retry_multiplier: float = Field(default=1.5, description="Backoff multiplier for HTML sources")
    web_retry_max_delay: float = Field(default=60.0, description="Retry delay cap for HTML sources")
    web_retry_max_attempts: int = Field(default=6, description="Attempts per HTML source before giving up")

    # Object Storage Configuration
    storage_endpoint: str = Field(default="", description="S3-compatible endpoint URL (Cloudflare R2)")
    storage_bucket: str = Field(default="bucket-competition", description="Bucket receiving relocated posters")
    storage_access_key_id: str = Field(default="", description="Object storage access key id")
    storage_secret_access_key: str = Field(default="", description="Object storage secret access key")
    storage_public_url: str = Field(
        default="https://objectcompetition.wahyuikbal.com", description="Public base URL of the bucket"
    )
    relocation_max_attempts: int = Field(default=3, description="Attempts per image relocation")
    relocation_base_delay: float = Field(default=1.0, description="Initial relocation retry delay in seconds")
    relocation_max_delay: float = Field(default=10.0, description="Relocation retry delay cap in seconds")
    relocation_timeout: float = Field(default=30.0, description="Image download timeout in seconds")
    relocation_batch_size: int = Field(default=40, description="Images relocated per batch")
    relocation_batch_pause: float = Field(default=2.0, description="Pause in seconds between relocation batches")

    # AI/API Configuration
    zai_api_key: str = Field(default="", description="Z.ai API key for text extraction")
    zai_model: str = Field(default="openai/glm-4.5v", description="LiteLLM model string for the text provider")
    zai_api_base: str = Field(
        default="https://api.z.ai/api/coding/paas/v4", description="OpenAI-compatible base URL for Z.ai"
    )
    mistral_api_key: str = Field(default="", description="Mistral API key for poster OCR")
    mistral_ocr_url: str = Field(default="https://api.mistral.ai/v1/ocr", description="Mistral OCR endpoint")
    mistral_ocr_model: str = Field(default="mistral-ocr-latest", description="Mistral OCR model")
    mistral_timeout: float = Field(default=60.0, description="Mistral OCR request timeout in seconds")
    gemini_api_key: str = Field(default="", description="Google Gemini API key for poster fallback extraction")
    gemini_model: str = Field(default="gemini/gemini-2.5-flash", description="LiteLLM model string for Gemini")

    # Scheduler Configuration
    batch_size: int = Field(default=2, description="Record ids processed per batch group")

    # Delivery Configuration
    waha_base_url: str = Field(default="https://waha-qxjcatc8.sumopod.in", description="WAHA gateway base URL")
    waha_api_key: str = Field(default="", description="WAHA API key (delivery is skipped when empty)")
    waha_session: str = Field(default="session_01jx523c9fdzcaev186szgc67h", description="WAHA session id")
    waha_channel_ids: list[str] = Field(
        default_factory=lambda: ["120363421736160206@g.us"], description="Chat ids every record is delivered to"
    )
    waha_timeout: float = Field(default=30.0, description="WAHA request timeout in seconds")

    # Event Trigger Configuration
    event_api_url: str = Field(default="https://inn.gs", description="Event API base URL")
    event_key: str = Field(default="", description="Event key (in-process scheduling when empty)")
    event_name: str = Field(default="process/batches.start", description="Event emitted for admitted records")

    @property
    def storage_configured(self) -> bool:
        return bool(self.storage_endpoint and self.storage_access_key_id and self.storage_secret_access_key)


# Global config instance - lazy loaded when first accessed
_config_instance: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Creates the config on first access, subsequent calls return the same instance.

    Returns:
        Config: The application configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reload_config() -> Config:
    """Reload configuration from environment variables.

    Returns:
        Config: A fresh configuration instance
    """
    global _config_instance
    _config_instance = Config()
    return _config_instance

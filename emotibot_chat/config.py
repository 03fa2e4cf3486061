"""
Runtime configuration for EmotiBot Chat.

Values are read from ``EMOTIBOT_*`` environment variables or a ``.env`` file.
The API bearer token is only ever supplied this way.
"""

import logging
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings."""

    api_key: SecretStr | None = Field(None, description="Bearer token for the chat API")
    api_url: str = Field(DEFAULT_API_URL, description="Chat completions endpoint")
    model: str = Field("gpt-4o-mini", description="Model name sent with each request")
    timeout: float | None = Field(
        None, description="Request timeout in seconds, httpx default when unset"
    )
    speaker_label: str = Field("Sage", description="Prefix shown before replies")
    language: str = Field("en-US", description="Language tag used for speech")
    voice_enabled: bool = Field(True, description="Speak replies by default")
    log_level: str = Field("INFO", description="Log level")

    model_config = SettingsConfigDict(
        env_prefix="EMOTIBOT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()


def configure_logging(level: str) -> None:
    """Configure root logging for the CLI and server entry points."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)

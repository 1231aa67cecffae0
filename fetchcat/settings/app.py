"""Application settings powered by Pydantic BaseSettings."""

from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fetchcat.request.constants import DEFAULT_CHUNK_SIZE


class FetchcatSettings(BaseSettings):
    """Environment configuration for request executors and the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="FETCHCAT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    user_agent: str | None = Field(
        default="fetchcat/0.1",
        description="User-Agent sent unless the caller sets one",
    )
    ca_bundle: str | None = Field(
        default=None,
        description="CA bundle used by ssl_verify() without an explicit path",
    )
    chunk_size: Annotated[int, Field(ge=1, le=16 * 1024 * 1024)] = DEFAULT_CHUNK_SIZE
    log_level: str = "INFO"
    json_logs: bool = True


def get_settings() -> FetchcatSettings:
    """Get a settings instance."""
    return FetchcatSettings()

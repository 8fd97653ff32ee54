"""
Configuration for RepoDB SDK.

Uses pydantic-settings for environment variable loading. Every setting can
be supplied as ``REPODB_<FIELD>`` (e.g. ``REPODB_GITHUB_TOKEN``).

Invariants:
    - All settings have defaults that work without a remote repository
    - The remote backend is used only when owner, repo and token are all set
    - The token is never logged or exposed in error messages
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """RepoDB configuration loaded from environment."""

    # Remote repository
    github_owner: str | None = Field(default=None, description="Repository owner")
    github_repo: str | None = Field(default=None, description="Repository name")
    github_token: str | None = Field(default=None, description="Access token")
    github_branch: str = Field(default="main", description="Branch holding the data")
    github_api_url: str = Field(
        default="https://api.github.com", description="Contents API base URL"
    )
    raw_base_url: str = Field(
        default="https://raw.githubusercontent.com",
        description="Base URL for raw blob locators",
    )
    data_prefix: str = Field(default="data", description="Directory for collection blobs")

    # Local fallback
    local_db_path: str = Field(
        default="~/.repodb/local.db", description="SQLite file for the fallback store"
    )
    local_key_prefix: str = Field(
        default="pricepilot_db_data/", description="Key prefix for fallback collections"
    )
    user_key: str = Field(default="pricepilot_user", description="Key of the session identity")

    # Transport
    request_timeout: float = Field(default=30.0, description="HTTP timeout seconds")
    max_conflict_retries: int = Field(
        default=1, description="Refresh-and-retry attempts after a write conflict"
    )

    # Observability
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="text", description="text or json")

    model_config = {"env_prefix": "REPODB_"}

    @property
    def remote_configured(self) -> bool:
        """Whether the remote repository can be used."""
        return bool(self.github_owner and self.github_repo and self.github_token)

    @property
    def local_db_file(self) -> Path:
        """Expanded path of the fallback SQLite file."""
        return Path(self.local_db_path).expanduser()


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings instance."""
    return Settings()

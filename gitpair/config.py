"""Configuration using pydantic-settings.

This module defines the GitPairSettings class that reads configuration
from environment variables with the GITPAIR_ prefix. Every field has a
default, so the tool runs without any environment set; command line
options override the values read here.
"""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_root() -> str:
    """Return the default local root: a ``repos`` directory under the cwd."""
    return str(Path.cwd() / "repos")


class GitPairSettings(BaseSettings):
    """gitpair configuration from environment variables.

    All environment variables are prefixed with GITPAIR_ (e.g.,
    GITPAIR_GITHUB_TOKEN). The token defaults to an empty string; it is
    effectively required but is not validated locally, GitHub rejects a
    bad one on the first request.
    """

    model_config = SettingsConfigDict(
        env_prefix="GITPAIR_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    # GitHub API token used for every remote call and for the clone
    github_token: str = ""

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    # Timeout in seconds for a single GitHub API request
    request_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Local Configuration
    # -------------------------------------------------------------------------
    # Directory under which working copies are cloned
    root: str = Field(default_factory=default_root)

    # Timeout in seconds for git clone
    clone_timeout_seconds: int = 300

    # Certificate verification for git clone (disabled by default)
    clone_verify_ssl: bool = False

    # -------------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------------
    # Serialize invocations targeting the same repository name
    lock_enabled: bool = False

    # Seconds to wait for a held lock before giving up
    lock_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = "INFO"

    # Render log events as JSON lines instead of console output
    log_json: bool = False

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that the GitHub base URL is a valid URL format."""
        if not v or not v.strip():
            raise ValueError("github_base_url cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError("github_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("request_timeout_seconds", "lock_timeout_seconds")
    @classmethod
    def validate_positive_timeout(cls, v: float) -> float:
        """Validate that timeouts are positive."""
        if v <= 0:
            raise ValueError("timeout must be greater than 0")
        return v

    @field_validator("clone_timeout_seconds")
    @classmethod
    def validate_clone_timeout(cls, v: int) -> int:
        """Validate that clone timeout is positive."""
        if v < 1:
            raise ValueError("clone_timeout_seconds must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is a standard level name."""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level


def get_settings() -> GitPairSettings:
    """Create and return a GitPairSettings instance.

    Returns:
        GitPairSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If a value is invalid.
    """
    return GitPairSettings()


def redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters.

    Args:
        value: The secret value to redact.
        visible_chars: Number of characters to show at the start.

    Returns:
        Redacted string with asterisks replacing hidden characters.
    """
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)

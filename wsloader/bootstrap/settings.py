"""Loader configuration loaded from WSLOADER_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoaderSettings(BaseSettings):
    """Workspace loader settings.

    Every field maps to a ``WSLOADER_``-prefixed environment variable (or a
    line in ``.env``), e.g. ``WSLOADER_RACE_TIMEOUT=60`` sets ``race_timeout``.
    Command-line options take precedence over these values.
    """

    model_config = SettingsConfigDict(
        env_prefix="WSLOADER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_file: str | None = None

    # -- Master ----------------------------------------------------------------
    api_url: str | None = None
    """Base URL of the master REST API.  Defaults to the loader URL's origin."""

    token: SecretStr | None = None
    token_min_validity: int = 5
    """Seconds a token must remain valid before a request; shorter-lived tokens are refreshed."""

    # -- Timeouts --------------------------------------------------------------
    request_timeout: float = 30.0
    connect_timeout: float = 10.0

    race_timeout: float | None = 900.0
    """Upper bound on waiting for RUNNING.

    Image pulls and slow recipes can take minutes.  Zero, a negative value or
    an unset value means wait forever.
    """

    navigate_delay: float = 0.1
    """Grace period before leaving for the IDE so its port is listening."""

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else None

    @field_validator("race_timeout")
    @classmethod
    def _unbounded_race(cls, value: float | None) -> float | None:
        return value if value is not None and value > 0 else None


@lru_cache(maxsize=1)
def get_settings() -> LoaderSettings:
    """Return the process-wide settings, read on first use.

    Tests that override env vars call ``get_settings.cache_clear()``.
    """
    return LoaderSettings()

"""Shared test fixtures: environment-driven settings.

``LoaderSettings`` is cached process-wide, so every env override goes through
``set_env`` which also invalidates the cache.  Overrides are undone after the
test by ``monkeypatch``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from wsloader.bootstrap.settings import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Never let one test's settings leak into the next."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def set_env(monkeypatch: pytest.MonkeyPatch) -> Callable[[str, str], None]:
    """Set an env var and invalidate the settings cache."""

    def _set_env(key: str, value: str) -> None:
        monkeypatch.setenv(key, value)
        get_settings.cache_clear()

    return _set_env

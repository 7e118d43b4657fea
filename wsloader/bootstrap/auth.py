"""Credential provider interface.

The loader never authenticates on its own.  It is handed an identity provider
that already holds a bearer token and knows how to refresh it; when a refresh
fails the provider is responsible for starting re-authentication, and the
current bootstrap attempt ends.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CredentialProvider(Protocol):
    """Async protocol over the identity provider."""

    def get_token(self) -> str | None:
        """Return the current bearer token, or ``None`` when anonymous."""
        ...

    async def refresh_token(self, min_validity: int) -> bool:
        """Ensure the token stays valid for ``min_validity`` seconds.

        Returns ``False`` when the refresh failed.
        """
        ...


class StaticTokenProvider:
    """Provider for a pre-issued token (or none, for single-user masters)."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token

    async def refresh_token(self, min_validity: int) -> bool:
        return True

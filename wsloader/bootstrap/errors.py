"""Loader error taxonomy.

Every failure the bootstrap can hit derives from ``LoaderError``.  None of
them is retried automatically: the orchestrator surfaces ``str(error)`` to the
presenter and halts.
"""

from __future__ import annotations


class LoaderError(Exception):
    """Base class for bootstrap failures."""


class MissingIdentifierError(LoaderError, ValueError):
    """Raised when the page location carries no workspace key."""


class WorkspaceNotFoundError(LoaderError, LookupError):
    """Raised when no workspace matches the requested id."""


class UnauthorizedError(LoaderError):
    """Raised when the master rejects the caller's credentials."""


class AuthRefreshFailedError(LoaderError):
    """Raised when the identity provider could not refresh the token."""


class ResourceTransportError(LoaderError):
    """Raised for any other REST failure (network, status, malformed body)."""


class ChannelConnectError(LoaderError):
    """Raised when the control channel cannot be established or drops."""


class WorkspaceEnvironmentError(LoaderError):
    """Raised when a status event reports an environment error."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ReadinessTimeoutError(LoaderError, TimeoutError):
    """Raised when the workspace does not become ready within the wait budget."""


class IdeEndpointNotFoundError(LoaderError, LookupError):
    """Raised when a running workspace exposes neither an IDE server nor link."""

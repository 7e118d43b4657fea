"""Page location and navigation.

``Location`` is the loader's view of the address it was opened at; it follows
the browser ``window.location`` split (protocol with trailing colon, host with
port, path, query string with leading ``?``).
"""

from __future__ import annotations

import webbrowser
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit

import click
from loguru import logger


@dataclass(frozen=True)
class Location:
    protocol: str = "http:"
    host: str = "localhost"
    pathname: str = "/"
    search: str = ""

    @classmethod
    def from_url(cls, url: str) -> Location:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            msg = f"Not an absolute URL: {url!r}"
            raise ValueError(msg)
        return cls(
            protocol=f"{parts.scheme}:",
            host=parts.netloc,
            pathname=parts.path or "/",
            search=f"?{parts.query}" if parts.query else "",
        )

    @property
    def origin(self) -> str:
        return f"{self.protocol}//{self.host}"

    @property
    def is_secure(self) -> bool:
        return self.protocol != "http:"

    def workspace_key(self) -> str:
        """Return the workspace key encoded in the path, or ``""``.

        The key is everything after the first path segment, so
        ``/loader/ws-1`` and ``/loader/alice/my-ws`` yield ``ws-1`` and
        ``alice/my-ws``.  A path with a single segment is the key itself.
        """
        path = self.pathname[1:] if self.pathname.startswith("/") else self.pathname
        _, _, rest = path.partition("/")
        return rest if "/" in path else path


@runtime_checkable
class Navigator(Protocol):
    def navigate(self, url: str) -> None:
        """Leave the loader for ``url``."""
        ...


class BrowserNavigator:
    """Open the target in the user's web browser."""

    def navigate(self, url: str) -> None:
        logger.info("Opening {}", url)
        if not webbrowser.open(url):
            logger.warning("No browser available, open the IDE manually")
            click.echo(url)


class EchoNavigator:
    """Print the target instead of opening it."""

    def navigate(self, url: str) -> None:
        click.echo(url)

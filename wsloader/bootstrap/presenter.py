"""Presentation sink for loader progress and failures.

The bootstrap only pushes into the presenter; nothing it returns is read back.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import click


@runtime_checkable
class Presenter(Protocol):
    def log(self, message: str) -> None:
        """Append a line of environment output."""
        ...

    def error(self, message: str) -> None:
        """Show an error message."""
        ...

    def hide_loader(self) -> None: ...

    def show_reload(self) -> None:
        """Offer the user a manual retry."""
        ...


class ConsolePresenter:
    """Terminal presenter used by the ``wsloader`` command."""

    def __init__(self, url: str | None = None) -> None:
        self._url = url
        self.loading = True

    def log(self, message: str) -> None:
        click.echo(message.rstrip("\n"))

    def error(self, message: str) -> None:
        click.secho(message, fg="red", err=True)

    def hide_loader(self) -> None:
        self.loading = False

    def show_reload(self) -> None:
        hint = f"wsloader open {self._url}" if self._url else "wsloader open <url>"
        click.echo(f"Retry with: {hint}", err=True)

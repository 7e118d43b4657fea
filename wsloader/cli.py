from __future__ import annotations

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from wsloader.bootstrap.auth import CredentialProvider
    from wsloader.bootstrap.context import BootstrapSession
    from wsloader.bootstrap.location import Location, Navigator
    from wsloader.bootstrap.presenter import Presenter
    from wsloader.bootstrap.settings import LoaderSettings


@click.group()
def main() -> None:
    """wsloader - start a cloud workspace and open its IDE."""


@main.command(name="open")
@click.argument("url")
@click.option("--token", default=None, help="Bearer token (default: from WSLOADER_TOKEN).")
@click.option("--no-browser", is_flag=True, default=False, help="Print the IDE URL instead of opening a browser.")
@click.option("--log-level", default=None, help="Log level (default: from WSLOADER_LOG_LEVEL or INFO).")
def open_workspace(url: str, token: str | None, no_browser: bool, log_level: str | None) -> None:
    """Bring the workspace behind URL to RUNNING and open its IDE.

    URL is the loader address, e.g. https://che.example.com/loader/alice/my-ws.
    """
    import asyncio

    from wsloader.bootstrap.auth import StaticTokenProvider
    from wsloader.bootstrap.location import BrowserNavigator, EchoNavigator, Location
    from wsloader.bootstrap.log import setup_logging
    from wsloader.bootstrap.models.enums import LoaderState
    from wsloader.bootstrap.presenter import ConsolePresenter
    from wsloader.bootstrap.settings import get_settings

    settings = get_settings()
    setup_logging(log_level or settings.log_level, log_file=settings.log_file)

    try:
        location = Location.from_url(url)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="URL") from None

    if token is None and settings.token is not None:
        token = settings.token.get_secret_value()

    navigator = EchoNavigator() if no_browser else BrowserNavigator()
    session = asyncio.run(
        _run(
            location,
            settings=settings,
            credentials=StaticTokenProvider(token),
            presenter=ConsolePresenter(url),
            navigator=navigator,
        )
    )
    if session.state == LoaderState.FAILED:
        raise SystemExit(1)


async def _run(
    location: Location,
    *,
    settings: LoaderSettings,
    credentials: CredentialProvider,
    presenter: Presenter,
    navigator: Navigator,
) -> BootstrapSession:
    from wsloader.bootstrap.client import ResourceClient
    from wsloader.bootstrap.orchestrator import BootstrapOrchestrator

    async with ResourceClient(
        settings.api_url or location.origin,
        credentials=credentials,
        token_min_validity=settings.token_min_validity,
        timeout=settings.request_timeout,
    ) as client:
        orchestrator = BootstrapOrchestrator(
            location,
            client=client,
            presenter=presenter,
            navigator=navigator,
            credentials=credentials,
            settings=settings,
        )
        session = await orchestrator.load()

    if session.navigation is not None:
        await session.navigation
    return session


if __name__ == "__main__":
    main()

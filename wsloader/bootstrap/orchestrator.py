"""Bootstrap orchestrator -- from page location to a running IDE.

The orchestrator drives one bootstrap attempt through::

    INIT -> FETCHING -> DECIDING -> (STARTING | AWAITING_CHANNEL) -> RACING
         -> RESOLVING -> NAVIGATING

with ``FAILED`` reachable from every state.

1. **Fetch**: read the workspace key from the location and load the resource.
2. **Decide**: RUNNING goes straight to resolving; STOPPED is started;
   STARTING is awaited; STOPPING is awaited and started once it stops.
3. **Race**: connect the control channel and wait for the first readiness
   signal (see ``race.py``).
4. **Resolve**: re-fetch for the authoritative runtime and pick the IDE URL.
5. **Navigate**: hand the URL to the navigator after a short delay.

Failures are never retried.  The error text goes to the presenter, the loader
indicator is hidden and a reload is offered.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from wsloader.bootstrap.channel import ControlChannel, master_endpoint
from wsloader.bootstrap.context import BootstrapSession
from wsloader.bootstrap.errors import (
    IdeEndpointNotFoundError,
    LoaderError,
    MissingIdentifierError,
    WorkspaceEnvironmentError,
)
from wsloader.bootstrap.models.enums import LoaderState, WorkspaceStatus
from wsloader.bootstrap.race import ReadinessRace, start_workspace
from wsloader.bootstrap.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import Callable

    from wsloader.bootstrap.auth import CredentialProvider
    from wsloader.bootstrap.client import ResourceClient
    from wsloader.bootstrap.location import Location, Navigator
    from wsloader.bootstrap.models.workspace import WorkspaceResource
    from wsloader.bootstrap.presenter import Presenter
    from wsloader.bootstrap.settings import LoaderSettings

IDE_SERVER_TYPE = "ide"


# ---------------------------------------------------------------------------
# IDE endpoint selection
# ---------------------------------------------------------------------------


def select_ide_url(workspace: WorkspaceResource) -> str:
    """Return the URL of the workspace's IDE.

    The first server whose ``type`` attribute is ``ide`` wins, scanning
    machines and then their servers in payload order.  ``links.ide`` is the
    fallback.
    """
    machines = workspace.runtime.machines if workspace.runtime else {}
    for machine in machines.values():
        for server in machine.servers.values():
            if server.attributes.get("type") == IDE_SERVER_TYPE:
                return server.url

    if workspace.links.ide:
        return workspace.links.ide

    msg = f"Workspace {workspace.id} exposes no IDE endpoint"
    raise IdeEndpointNotFoundError(msg)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class BootstrapOrchestrator:
    """Drive a workspace from whatever state it is in to an open IDE."""

    def __init__(
        self,
        location: Location,
        *,
        client: ResourceClient,
        presenter: Presenter,
        navigator: Navigator,
        credentials: CredentialProvider | None = None,
        settings: LoaderSettings | None = None,
        channel_factory: Callable[[], ControlChannel] | None = None,
    ) -> None:
        self.location = location
        self.session = BootstrapSession()
        self._client = client
        self._presenter = presenter
        self._navigator = navigator
        self._credentials = credentials
        self._settings = settings or get_settings()
        self._channel_factory = channel_factory or self._default_channel
        self._resolving = False

    def _default_channel(self) -> ControlChannel:
        token = self._credentials.get_token() if self._credentials else None
        return ControlChannel(
            master_endpoint(self.location, token),
            connect_timeout=self._settings.connect_timeout,
        )

    # -- Entry point -----------------------------------------------------------

    async def load(self) -> BootstrapSession:
        """Run the bootstrap.  Never raises loader errors; inspect the session."""
        try:
            await self._fetch()
            await self._ensure_running()
            await self._resolve_and_navigate()
        except LoaderError as exc:
            self._fail(exc)
        finally:
            await self._close_channel()
        return self.session

    # -- States ----------------------------------------------------------------

    async def _fetch(self) -> None:
        workspace_key = self.location.workspace_key()
        if not workspace_key:
            msg = "Workspace is not defined"
            raise MissingIdentifierError(msg)

        self._transition(LoaderState.FETCHING)
        self.session.workspace_id = workspace_key
        workspace = await self._client.fetch(workspace_key)
        # The key may be ``namespace/name``; the master's id is authoritative.
        self.session.workspace_id = workspace.id
        self.session.workspace = workspace

    async def _ensure_running(self) -> None:
        session = self.session
        assert session.workspace is not None  # noqa: S101
        self._transition(LoaderState.DECIDING)

        status = session.workspace.status
        logger.debug("Workspace {} is {}", session.workspace_id, status)
        if status == WorkspaceStatus.RUNNING:
            return

        if status == WorkspaceStatus.STOPPED:
            self._transition(LoaderState.STARTING)
            await start_workspace(session, self._client)
        else:
            if status == WorkspaceStatus.STOPPING:
                session.start_after_stopping = True
            self._transition(LoaderState.AWAITING_CHANNEL)

        session.channel = self._channel_factory()
        self._transition(LoaderState.RACING)
        race = ReadinessRace(
            session,
            self._client,
            session.channel,
            self._presenter,
            timeout=self._settings.race_timeout,
        )
        session.race_path = await race.run()

    async def _resolve_and_navigate(self) -> None:
        if self._resolving:
            logger.debug("Already resolving, ignoring duplicate readiness signal")
            return
        self._resolving = True

        session = self.session
        assert session.workspace_id is not None  # noqa: S101
        self._transition(LoaderState.RESOLVING)

        workspace = await self._client.fetch(session.workspace_id)
        session.workspace = workspace
        if not workspace.is_running:
            msg = f"Workspace {workspace.id} is {workspace.status}, expected RUNNING"
            raise WorkspaceEnvironmentError(msg)

        session.ide_url = select_ide_url(workspace) + self.location.search
        self._transition(LoaderState.NAVIGATING)
        session.navigation = asyncio.create_task(self._navigate_later(session.ide_url))

    async def _navigate_later(self, url: str) -> None:
        # A preconfigured IDE may listen on a dedicated port that refuses
        # connections for a moment after the workspace reports RUNNING.
        await asyncio.sleep(self._settings.navigate_delay)
        logger.info("Opening IDE at {}", url)
        self._navigator.navigate(url)

    def _fail(self, exc: LoaderError) -> None:
        logger.error("Workspace loading failed: {}", exc)
        self.session.error = exc
        self._transition(LoaderState.FAILED)
        self._presenter.error(str(exc))
        self._presenter.hide_loader()
        self._presenter.show_reload()

    # -- Helpers ---------------------------------------------------------------

    def _transition(self, state: LoaderState) -> None:
        logger.debug("Loader: {} -> {}", self.session.state, state)
        self.session.state = state
        self.session.history.append(state)

    async def _close_channel(self) -> None:
        if self.session.channel is not None:
            await self.session.channel.close()

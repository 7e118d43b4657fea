"""Readiness race -- wait for a workspace to reach RUNNING.

Two signals are raced on one control channel connection:

1. **connection**: when the channel opens, re-fetch the workspace over REST
   and resolve if it is RUNNING.
2. **status event**: a ``workspace/statusChanged`` notification carrying
   RUNNING resolves without another fetch.

The ``open`` listener and both topic subscriptions are attached before the
channel connects, so no event can slip between connect and subscribe.  The
first signal wins; anything arriving afterwards is ignored and pending work
from the losing branch is cancelled.

Other status notifications:

- ``error`` set: fail with ``WorkspaceEnvironmentError``.
- STOPPED: request a fresh start (never two at once) and keep waiting.  This
  is also how a workspace found STOPPING at session start gets started.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import ValidationError

from wsloader.bootstrap.errors import (
    ChannelConnectError,
    ReadinessTimeoutError,
    WorkspaceEnvironmentError,
)
from wsloader.bootstrap.models.enums import ChannelEvent, ChannelTopic, RacePath, WorkspaceStatus
from wsloader.bootstrap.models.events import OutputEvent, StatusEvent

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from wsloader.bootstrap.channel import ControlChannel
    from wsloader.bootstrap.client import ResourceClient
    from wsloader.bootstrap.context import BootstrapSession
    from wsloader.bootstrap.models.workspace import WorkspaceResource
    from wsloader.bootstrap.presenter import Presenter


async def start_workspace(session: BootstrapSession, client: ResourceClient) -> WorkspaceResource | None:
    """Issue a start request unless one is already in flight.

    Returns the accepted resource, or ``None`` when the call was skipped.
    """
    if session.start_in_flight:
        logger.debug("Start of {} already in flight, not starting again", session.workspace_id)
        return None

    assert session.workspace_id is not None  # noqa: S101
    session.start_in_flight = True
    session.start_calls += 1
    try:
        workspace = await client.start(session.workspace_id)
    finally:
        session.start_in_flight = False
    session.workspace = workspace
    return workspace


class ReadinessRace:
    """Resolve once the session's workspace is RUNNING, by whichever signal comes first."""

    def __init__(
        self,
        session: BootstrapSession,
        client: ResourceClient,
        channel: ControlChannel,
        presenter: Presenter,
        *,
        timeout: float | None = None,
    ) -> None:
        self._session = session
        self._client = client
        self._channel = channel
        self._presenter = presenter
        self._timeout = timeout
        self._outcome: asyncio.Future[RacePath] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def settled(self) -> bool:
        return self._outcome is not None and self._outcome.done()

    async def run(self) -> RacePath:
        """Connect the channel and wait for the first readiness signal.

        Raises ``WorkspaceEnvironmentError``, ``ChannelConnectError``,
        ``ReadinessTimeoutError`` or whatever REST error a poll or corrective
        start hit.
        """
        workspace_id = self._session.workspace_id
        assert workspace_id is not None  # noqa: S101
        self._outcome = asyncio.get_running_loop().create_future()

        self._channel.add_listener(ChannelEvent.OPEN, self._on_open)
        self._channel.add_listener(ChannelEvent.CLOSE, self._on_close)
        await self._channel.subscribe_topic(ChannelTopic.ENVIRONMENT_OUTPUT, workspace_id, self._on_output)
        await self._channel.subscribe_topic(ChannelTopic.WORKSPACE_STATUS, workspace_id, self._on_status)

        try:
            path = await asyncio.wait_for(self._connect_and_wait(), timeout=self._timeout)
        except TimeoutError as exc:
            if isinstance(exc, ReadinessTimeoutError):
                raise
            msg = f"Workspace {workspace_id} did not become ready within {self._timeout:g}s"
            raise ReadinessTimeoutError(msg) from None
        finally:
            self._cancel_pending()

        logger.info("Workspace {} is running (signalled by {})", workspace_id, path)
        return path

    async def _connect_and_wait(self) -> RacePath:
        assert self._outcome is not None  # noqa: S101
        await self._channel.connect()
        return await self._outcome

    # -- Outcome ---------------------------------------------------------------

    def _resolve(self, path: RacePath) -> None:
        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_result(path)

    def _fail(self, exc: BaseException) -> None:
        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_exception(exc)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._fail(exc)

    def _cancel_pending(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    # -- Channel callbacks -----------------------------------------------------

    def _on_open(self) -> None:
        if not self.settled:
            self._spawn(self._poll_on_open())

    def _on_close(self) -> None:
        msg = "Control channel closed before the workspace was ready"
        self._fail(ChannelConnectError(msg))

    def _on_output(self, payload: dict[str, Any]) -> None:
        event = OutputEvent.model_validate(payload)
        if event.text:
            self._presenter.log(event.text)

    def _on_status(self, payload: dict[str, Any]) -> None:
        try:
            event = StatusEvent.model_validate(payload)
        except ValidationError:
            if not payload.get("error"):
                logger.warning("Ignoring unreadable status event: {}", payload)
                return
            # Unknown status values still carry a usable error.
            event = StatusEvent(workspace_id=payload.get("workspaceId"), error=str(payload["error"]))

        if self.settled:
            logger.debug("Ignoring status event after the race settled: {}", event.status)
            return

        if event.status is not None and self._session.workspace is not None:
            self._session.workspace = self._session.workspace.model_copy(update={"status": event.status})

        if event.error:
            logger.warning("Workspace {} reported an error: {}", self._session.workspace_id, event.error)
            self._fail(WorkspaceEnvironmentError(event.error))
        elif event.status == WorkspaceStatus.RUNNING:
            self._resolve(RacePath.STATUS_EVENT)
        elif event.status == WorkspaceStatus.STOPPED:
            self._spawn(self._start_after_stop())

    # -- Branch work -----------------------------------------------------------

    async def _poll_on_open(self) -> None:
        assert self._session.workspace_id is not None  # noqa: S101
        workspace = await self._client.fetch(self._session.workspace_id)
        if self.settled:
            return
        self._session.workspace = workspace
        if workspace.is_running:
            self._resolve(RacePath.CONNECTION)

    async def _start_after_stop(self) -> None:
        if self._session.start_after_stopping:
            logger.info("Workspace {} finished stopping, starting it", self._session.workspace_id)
            self._session.start_after_stopping = False
        await start_workspace(self._session, self._client)

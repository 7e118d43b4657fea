"""Shared fixtures for bootstrap tests.

The orchestrator and race are exercised against in-memory fakes:

- ``FakeResourceClient`` replays a scripted sequence of fetch statuses.
- ``FakeChannel`` records registrations and lets a test push lifecycle
  events and topic messages synchronously, the way the reader task would.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from wsloader.bootstrap.location import Location, Navigator
from wsloader.bootstrap.models.enums import ChannelEvent, ChannelTopic, WorkspaceStatus
from wsloader.bootstrap.models.workspace import WorkspaceResource
from wsloader.bootstrap.orchestrator import BootstrapOrchestrator
from wsloader.bootstrap.presenter import Presenter
from wsloader.bootstrap.settings import LoaderSettings

IDE_URL = "https://ws.example.com/w1/ide/"


def build_workspace(
    workspace_id: str = "w1",
    status: WorkspaceStatus = WorkspaceStatus.RUNNING,
    *,
    ide_url: str | None = IDE_URL,
    fallback: str | None = "https://ws.example.com/fallback",
) -> WorkspaceResource:
    payload: dict[str, Any] = {"id": workspace_id, "status": status, "links": {"ide": fallback}}
    if status == WorkspaceStatus.RUNNING:
        servers: dict[str, Any] = {"terminal": {"url": "wss://ws.example.com/term", "attributes": {"type": "terminal"}}}
        if ide_url is not None:
            servers["theia"] = {"url": ide_url, "attributes": {"type": "ide"}}
        payload["runtime"] = {"machines": {"dev": {"servers": servers}}}
    return WorkspaceResource.model_validate(payload)


class FakeResourceClient:
    """Returns scripted statuses; the last one repeats forever."""

    def __init__(self, *statuses: WorkspaceStatus, workspace_id: str = "w1") -> None:
        self.statuses = list(statuses)
        self.workspace_id = workspace_id
        self.fetch_calls = 0
        self.start_calls = 0
        self.fetch_error: Exception | None = None
        self.start_error: Exception | None = None
        self.start_gate: asyncio.Event | None = None

    async def fetch(self, workspace_id: str) -> WorkspaceResource:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return build_workspace(self.workspace_id, status)

    async def start(self, workspace_id: str) -> WorkspaceResource:
        self.start_calls += 1
        if self.start_gate is not None:
            await self.start_gate.wait()
        if self.start_error is not None:
            raise self.start_error
        return build_workspace(self.workspace_id, WorkspaceStatus.STARTING)


class FakeChannel:
    def __init__(self) -> None:
        self.listeners: dict[ChannelEvent, list[Callable[[], None]]] = defaultdict(list)
        self.subscriptions: list[tuple[ChannelTopic, str, Callable[[dict[str, Any]], None]]] = []
        self.open_on_connect = True
        self.connect_error: Exception | None = None
        self.connect_calls = 0
        self.registered_at_connect: tuple[int, int] | None = None
        self.on_connect: Callable[[FakeChannel], None] | None = None
        self.closed = False

    def add_listener(self, event: ChannelEvent | str, callback: Callable[[], None]) -> None:
        self.listeners[ChannelEvent(event)].append(callback)

    async def subscribe_topic(
        self, topic: ChannelTopic | str, resource_id: str, callback: Callable[[dict[str, Any]], None]
    ) -> None:
        self.subscriptions.append((ChannelTopic(topic), resource_id, callback))

    async def connect(self) -> None:
        self.connect_calls += 1
        self.registered_at_connect = (len(self.listeners[ChannelEvent.OPEN]), len(self.subscriptions))
        if self.connect_error is not None:
            raise self.connect_error
        if self.open_on_connect:
            self.emit(ChannelEvent.OPEN)
        if self.on_connect is not None:
            self.on_connect(self)

    async def close(self) -> None:
        self.closed = True

    def emit(self, event: ChannelEvent) -> None:
        for callback in list(self.listeners[event]):
            callback()

    def publish(self, topic: ChannelTopic, payload: dict[str, Any]) -> None:
        for sub_topic, _resource_id, callback in list(self.subscriptions):
            if sub_topic == topic:
                callback(payload)

    def status(self, status: str, **extra: Any) -> None:
        self.publish(ChannelTopic.WORKSPACE_STATUS, {"workspaceId": "w1", "status": status, **extra})


async def _eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            msg = "condition not met in time"
            raise AssertionError(msg)
        await asyncio.sleep(0.001)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def eventually() -> Callable[..., Awaitable[None]]:
    return _eventually


@pytest.fixture
def workspace_factory() -> Callable[..., WorkspaceResource]:
    return build_workspace


@pytest.fixture
def client_factory() -> Callable[..., FakeResourceClient]:
    return FakeResourceClient


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def presenter() -> MagicMock:
    return MagicMock(spec=Presenter)


@pytest.fixture
def navigator() -> MagicMock:
    return MagicMock(spec=Navigator)


@pytest.fixture
def settings() -> LoaderSettings:
    return LoaderSettings(race_timeout=5.0, navigate_delay=0.0)


@pytest.fixture
def orchestrator_factory(
    channel: FakeChannel,
    presenter: MagicMock,
    navigator: MagicMock,
    settings: LoaderSettings,
) -> Callable[..., BootstrapOrchestrator]:
    """Build an orchestrator for ``url`` wired to the shared fakes."""

    def _build(client: FakeResourceClient, url: str = "https://che.example.com/loader/w1") -> BootstrapOrchestrator:
        return BootstrapOrchestrator(
            Location.from_url(url),
            client=client,  # type: ignore[arg-type]
            presenter=presenter,
            navigator=navigator,
            settings=settings,
            channel_factory=lambda: channel,  # type: ignore[arg-type,return-value]
        )

    return _build

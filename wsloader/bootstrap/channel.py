"""Control channel -- JSON-RPC over a WebSocket to the workspace master.

The channel is created unconnected so callers can attach lifecycle listeners
and topic subscriptions first; ``connect`` then opens the socket, sends every
pending subscription, starts the reader task and fires ``open``.  Callbacks
are plain functions invoked from the reader task, one message at a time, in
receive order.

Subscribe request::

    {"jsonrpc": "2.0", "id": 1, "method": "subscribe",
     "params": {"method": "workspace/statusChanged", "scope": {"workspaceId": "ws-1"}}}

Notification::

    {"jsonrpc": "2.0", "method": "workspace/statusChanged",
     "params": {"workspaceId": "ws-1", "status": "RUNNING"}}
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode, urlsplit

import aiohttp
from loguru import logger
from pydantic import ValidationError

from wsloader.bootstrap.errors import ChannelConnectError
from wsloader.bootstrap.models.enums import ChannelEvent, ChannelTopic
from wsloader.bootstrap.models.events import JsonRpcMessage

if TYPE_CHECKING:
    from collections.abc import Callable

    from wsloader.bootstrap.location import Location

WEBSOCKET_CONTEXT = "/api/websocket"
SUBSCRIBE_METHOD = "subscribe"


def master_endpoint(location: Location, token: str | None = None) -> str:
    """Build the master WebSocket URL for the page at ``location``."""
    scheme = "wss" if location.is_secure else "ws"
    url = f"{scheme}://{location.host}{WEBSOCKET_CONTEXT}"
    if token:
        url += "?" + urlencode({"token": token})
    return url


def _redact(endpoint: str) -> str:
    parts = urlsplit(endpoint)
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


def _resource_of(params: dict[str, Any]) -> str | None:
    """Return the workspace id a notification is scoped to, if it names one."""
    workspace_id = params.get("workspaceId")
    if workspace_id is None and isinstance(params.get("runtimeId"), dict):
        workspace_id = params["runtimeId"].get("workspaceId")
    return workspace_id


@dataclass
class _Subscription:
    topic: ChannelTopic
    resource_id: str
    callback: Callable[[dict[str, Any]], None]
    sent: bool = False


class ControlChannel:
    """Persistent connection to the master's JSON-RPC endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        connect_timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._session = session
        self._own_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._listeners: dict[ChannelEvent, list[Callable[[], None]]] = defaultdict(list)
        self._subscriptions: list[_Subscription] = []
        self._request_ids = itertools.count(1)
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    # -- Registration ----------------------------------------------------------

    def add_listener(self, event: ChannelEvent | str, callback: Callable[[], None]) -> None:
        self._listeners[ChannelEvent(event)].append(callback)

    async def subscribe_topic(
        self,
        topic: ChannelTopic | str,
        resource_id: str,
        callback: Callable[[dict[str, Any]], None],
    ) -> None:
        """Deliver every ``topic`` notification for ``resource_id`` to ``callback``.

        Before ``connect`` this only records the subscription; afterwards the
        subscribe request is sent right away.
        """
        subscription = _Subscription(ChannelTopic(topic), resource_id, callback)
        self._subscriptions.append(subscription)
        if self.connected:
            await self._send_subscribe(subscription)

    # -- Lifecycle -------------------------------------------------------------

    async def connect(self) -> None:
        """Open the socket.  Raises ``ChannelConnectError`` on failure or timeout."""
        if self._ws is not None:
            msg = "Control channel is already connected"
            raise RuntimeError(msg)

        if self._session is None:
            self._session = aiohttp.ClientSession()

        logger.debug("Connecting control channel to {}", _redact(self.endpoint))
        try:
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(self.endpoint),
                timeout=self._connect_timeout,
            )
        except (aiohttp.ClientError, OSError, TimeoutError) as exc:
            await self._close_session()
            detail = str(exc) or type(exc).__name__
            msg = f"Cannot connect to {_redact(self.endpoint)}: {detail}"
            raise ChannelConnectError(msg) from exc

        for subscription in self._subscriptions:
            await self._send_subscribe(subscription)

        self._reader = asyncio.create_task(self._read_loop())
        logger.info("Control channel open ({})", _redact(self.endpoint))
        self._emit(ChannelEvent.OPEN)

    async def close(self) -> None:
        self._closing = True
        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
            self._reader = None
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        await self._close_session()

    async def _close_session(self) -> None:
        if self._own_session and self._session is not None:
            await self._session.close()
            self._session = None

    # -- Outbound --------------------------------------------------------------

    async def _send_subscribe(self, subscription: _Subscription) -> None:
        if subscription.sent or self._ws is None:
            return
        request = JsonRpcMessage(
            id=next(self._request_ids),
            method=SUBSCRIBE_METHOD,
            params={
                "method": subscription.topic.value,
                "scope": {"workspaceId": subscription.resource_id},
            },
        )
        try:
            await self._ws.send_str(request.model_dump_json(exclude_none=True))
        except (aiohttp.ClientError, ConnectionError) as exc:
            msg = f"Cannot subscribe to {subscription.topic}: {exc}"
            raise ChannelConnectError(msg) from exc
        subscription.sent = True
        logger.debug("Subscribed to {} for {}", subscription.topic, subscription.resource_id)

    # -- Inbound ---------------------------------------------------------------

    async def _read_loop(self) -> None:
        assert self._ws is not None  # noqa: S101
        try:
            async for frame in self._ws:
                if frame.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(frame.data)
                elif frame.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("Control channel error: {}", self._ws.exception())
                    break
        finally:
            if not self._closing:
                logger.info("Control channel closed by the master")
                self._emit(ChannelEvent.CLOSE)

    def _dispatch(self, raw: str) -> None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Dropping non-JSON control channel frame: {!r}", raw[:200])
            return
        if not isinstance(data, dict) or "method" not in data:
            # Responses to our subscribe requests carry no method.
            logger.trace("Control channel response: {}", data)
            return
        try:
            message = JsonRpcMessage.model_validate(data)
        except ValidationError:
            logger.warning("Dropping malformed control channel frame: {!r}", raw[:200])
            return

        resource_id = _resource_of(message.params)
        for subscription in list(self._subscriptions):
            if subscription.topic != message.method:
                continue
            if resource_id is not None and resource_id != subscription.resource_id:
                continue
            try:
                subscription.callback(message.params)
            except Exception:
                logger.exception("Subscriber for {} failed", message.method)

    def _emit(self, event: ChannelEvent) -> None:
        for callback in list(self._listeners[event]):
            try:
                callback()
            except Exception:
                logger.exception("Listener for {!r} failed", event.value)

"""Shared enumerations used across the loader bootstrap."""

from __future__ import annotations

from enum import StrEnum

# -- Workspace ---------------------------------------------------------------


class WorkspaceStatus(StrEnum):
    """Lifecycle status owned by the workspace master."""

    STOPPED = "STOPPED"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"


# -- Control channel ---------------------------------------------------------


class ChannelTopic(StrEnum):
    """JSON-RPC notification methods published by the master."""

    WORKSPACE_STATUS = "workspace/statusChanged"
    ENVIRONMENT_OUTPUT = "machine/log"


class ChannelEvent(StrEnum):
    """Connection lifecycle events a listener can register for."""

    OPEN = "open"
    CLOSE = "close"


# -- Bootstrap ---------------------------------------------------------------


class LoaderState(StrEnum):
    """States of the bootstrap state machine."""

    INIT = "init"
    FETCHING = "fetching"
    DECIDING = "deciding"
    STARTING = "starting"
    AWAITING_CHANNEL = "awaiting_channel"
    RACING = "racing"
    RESOLVING = "resolving"
    NAVIGATING = "navigating"
    FAILED = "failed"


class RacePath(StrEnum):
    """Which readiness signal settled the race."""

    CONNECTION = "connection"
    STATUS_EVENT = "status_event"

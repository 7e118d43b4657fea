"""Data models for the loader bootstrap."""

from wsloader.bootstrap.models.enums import (
    ChannelEvent,
    ChannelTopic,
    LoaderState,
    RacePath,
    WorkspaceStatus,
)
from wsloader.bootstrap.models.events import JsonRpcMessage, OutputEvent, StatusEvent
from wsloader.bootstrap.models.workspace import (
    MachineInfo,
    ServerInfo,
    WorkspaceLinks,
    WorkspaceResource,
    WorkspaceRuntime,
)

__all__ = [
    # Enums
    "ChannelEvent",
    "ChannelTopic",
    # Events
    "JsonRpcMessage",
    "LoaderState",
    # Workspace
    "MachineInfo",
    "OutputEvent",
    "RacePath",
    "ServerInfo",
    "StatusEvent",
    "WorkspaceLinks",
    "WorkspaceResource",
    "WorkspaceRuntime",
    "WorkspaceStatus",
]

"""Control channel message models.

Defines the JSON-RPC envelope exchanged with the master and the payloads of
the two topics the loader subscribes to.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wsloader.bootstrap.models.enums import WorkspaceStatus

JSONRPC_VERSION = "2.0"


class JsonRpcMessage(BaseModel):
    """Wire-format JSON-RPC 2.0 request or notification."""

    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    id: int | str | None = None


class StatusEvent(BaseModel):
    """Payload of ``workspace/statusChanged``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    status: WorkspaceStatus | None = None
    prev_status: WorkspaceStatus | None = Field(default=None, alias="prevStatus")
    workspace_id: str | None = Field(default=None, alias="workspaceId")
    error: str | None = None


class OutputEvent(BaseModel):
    """Payload of ``machine/log``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    text: str = ""
    machine_name: str | None = Field(default=None, alias="machineName")

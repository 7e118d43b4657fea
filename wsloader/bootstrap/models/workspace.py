"""Workspace resource model.

Mirrors the subset of the master's workspace representation the loader reads
(``GET /api/workspace/{id}``).  Unknown fields are ignored so the loader keeps
working when the master adds to the payload.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from wsloader.bootstrap.models.enums import WorkspaceStatus


class ServerInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    attributes: dict[str, str] = Field(default_factory=dict)


class MachineInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    servers: dict[str, ServerInfo] = Field(default_factory=dict)


class WorkspaceRuntime(BaseModel):
    """Runtime block, present only while running or starting."""

    model_config = ConfigDict(extra="ignore")

    machines: dict[str, MachineInfo] = Field(default_factory=dict)


class WorkspaceLinks(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ide: str | None = None


class WorkspaceResource(BaseModel):
    """Workspace as returned by the master REST API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: WorkspaceStatus
    namespace: str | None = None
    runtime: WorkspaceRuntime | None = None
    links: WorkspaceLinks = Field(default_factory=WorkspaceLinks)

    @property
    def is_running(self) -> bool:
        return self.status == WorkspaceStatus.RUNNING

"""Bootstrap session context.

Holds the mutable state of one bootstrap attempt.  Only the orchestrator and
the readiness race it drives touch it, always from the event loop, so no
locking is involved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from wsloader.bootstrap.models.enums import LoaderState

if TYPE_CHECKING:
    import asyncio

    from wsloader.bootstrap.channel import ControlChannel
    from wsloader.bootstrap.errors import LoaderError
    from wsloader.bootstrap.models.enums import RacePath
    from wsloader.bootstrap.models.workspace import WorkspaceResource


@dataclass
class BootstrapSession:
    """In-flight state for a single bootstrap attempt.

    Created by the orchestrator; discarded once navigation is scheduled or
    the attempt failed.
    """

    # -- Target ----------------------------------------------------------------
    workspace_id: str | None = None
    workspace: WorkspaceResource | None = None
    """Last known resource state, refreshed on fetches and status events."""

    # -- Start bookkeeping -----------------------------------------------------
    start_after_stopping: bool = False
    """Observed STOPPING at session start; start once STOPPED is reported."""

    start_in_flight: bool = False
    start_calls: int = 0

    # -- Live references -------------------------------------------------------
    channel: ControlChannel | None = None
    navigation: asyncio.Task[None] | None = None

    # -- Progress --------------------------------------------------------------
    state: LoaderState = LoaderState.INIT
    history: list[LoaderState] = field(default_factory=lambda: [LoaderState.INIT])
    race_path: RacePath | None = None
    ide_url: str | None = None
    error: LoaderError | None = None

"""Startup Context — the explicit, read-only state every handler may consult.

Invariants:
    - Built once by the bootstrap sequencer after storage connects
    - Stored on app.state.context; never replaced after wiring
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from fastapi import Request
from starlette.requests import HTTPConnection

from streamgate.config import Settings
from streamgate.core.launch import LaunchMetadata, utc_now
from streamgate.infrastructure.database import DatabaseSessionManager
from streamgate.services.event_hub import EventHub
from streamgate.services.job_supervisor import JobSupervisor


@dataclass(frozen=True)
class StartupContext:
    settings: Settings
    launch: LaunchMetadata
    storage: DatabaseSessionManager
    supervisor: JobSupervisor
    hub: EventHub
    clock: Callable[[], datetime] = field(default=utc_now)


def context_of(connection: HTTPConnection) -> StartupContext:
    """Works for both HTTP requests and WebSocket connections."""
    return connection.app.state.context


def get_context(request: Request) -> StartupContext:
    """FastAPI dependency returning the startup context."""
    return context_of(request)

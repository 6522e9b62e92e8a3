"""Bootstrap Sequencer — brings the process from cold start to accepting connections.

Invariants:
    - Phase order: connect storage (awaited) → middleware → routes (HTTP + WebSocket)
      → error boundary → background jobs (not awaited) → bind listener → serve
    - Any failure before LISTENING moves the tracker to FATAL_ABORT and re-raises;
      the listener is never bound after a storage failure
    - A wiring failure after storage connected disposes that storage before re-raising
    - Background jobs are launched through the JobSupervisor and never delay
      or prevent the listener from binding
    - The application is built once per Bootstrapper and never rebuilt

Design Decisions:
    - Route groups and jobs are factories of the StartupContext: they are built
      only after storage is connected, with the handle they need
    - Composition root (build_bootstrapper) kept here, next to the sequencer
"""

import asyncio
import logging
from typing import Callable, Protocol

from fastapi import FastAPI

from streamgate.api.context import StartupContext
from streamgate.api.error_handlers import register_error_handlers
from streamgate.api.middleware import build_middleware_chain
from streamgate.api.routes.events import create_events_group
from streamgate.api.routes.health import create_health_group
from streamgate.api.routing import RouteGroup, register_root_endpoint, register_route_groups
from streamgate.config import Settings
from streamgate.core.bootstrap_phase import BootstrapPhase, PhaseTracker
from streamgate.core.launch import LaunchMetadata, utc_now
from streamgate.infrastructure.database import DatabaseConnector, DatabaseSessionManager
from streamgate.infrastructure.listener import Listener
from streamgate.infrastructure.stream_source import HttpNdjsonSource
from streamgate.services.event_hub import EventHub
from streamgate.services.job_supervisor import JobSpec, JobSupervisor, RestartPolicy
from streamgate.services.migration_job import MigrationJob
from streamgate.services.stream_consumer import StreamConsumer, StreamEventRecorder, hub_publisher

logger = logging.getLogger(__name__)

RouteGroupFactory = Callable[[StartupContext], list[RouteGroup]]
JobFactory = Callable[[StartupContext], list[JobSpec]]


class StorageConnector(Protocol):
    """Contract for the component that must succeed before anything is wired."""
    async def connect(self) -> DatabaseSessionManager: ...


class Bootstrapper:
    def __init__(
        self,
        settings: Settings,
        connector: StorageConnector,
        listener: Listener,
        *,
        route_groups: RouteGroupFactory,
        jobs: JobFactory,
        launch: LaunchMetadata | None = None,
        supervisor: JobSupervisor | None = None,
        hub: EventHub | None = None,
        clock=utc_now,
    ):
        self.settings = settings
        self.connector = connector
        self.listener = listener
        self.route_groups = route_groups
        self.jobs = jobs
        self.launch = launch or LaunchMetadata.capture(settings.app_version, clock())
        self.supervisor = supervisor or JobSupervisor()
        self.hub = hub or EventHub(settings.event_hub_queue_size)
        self.clock = clock
        self.phases = PhaseTracker()
        self.context: StartupContext | None = None
        self.app: FastAPI | None = None

    @property
    def phase(self) -> BootstrapPhase:
        return self.phases.phase

    def _enter(self, phase: BootstrapPhase) -> None:
        self.phases.advance(phase)
        logger.info(f"Bootstrap phase: {phase.value}", extra={"phase": phase.value})

    async def wire(self) -> FastAPI:
        """Connect storage, then build the fully wired application."""
        if self.app is not None:
            raise RuntimeError("Application already wired")
        try:
            self._enter(BootstrapPhase.CONNECTING_STORAGE)
            storage = await self.connector.connect()
            self.context = StartupContext(
                settings=self.settings,
                launch=self.launch,
                storage=storage,
                supervisor=self.supervisor,
                hub=self.hub,
                clock=self.clock,
            )

            self._enter(BootstrapPhase.WIRING_MIDDLEWARE)
            prefix = self.settings.api_prefix
            app = FastAPI(
                title="streamgate",
                version=self.launch.version,
                middleware=build_middleware_chain(self.settings),
                openapi_url=f"{prefix}/openapi.json",
                docs_url=None,
                redoc_url=None,
            )
            app.state.context = self.context

            self._enter(BootstrapPhase.WIRING_ROUTES)
            register_route_groups(app, self.route_groups(self.context), prefix)
            register_root_endpoint(app)

            self._enter(BootstrapPhase.WIRING_ERROR_BOUNDARY)
            register_error_handlers(app)
        except Exception as e:
            logger.critical(
                f"Bootstrap aborted during {self.phase.value}: {e}",
                extra={"phase": self.phase.value},
            )
            self.phases.abort()
            if self.context is not None:
                await self.context.storage.dispose()
            raise
        self.app = app
        return app

    def launch_background_jobs(self) -> list[asyncio.Task]:
        """Fire every job without awaiting it. Launch failures are contained."""
        self._enter(BootstrapPhase.LAUNCHING_BACKGROUND_JOBS)
        try:
            specs = self.jobs(self.context)
        except Exception as e:
            logger.error(f"Could not build background jobs: {e}", exc_info=True)
            return []
        tasks = []
        for spec in specs:
            try:
                tasks.append(self.supervisor.launch(spec))
            except Exception as e:
                logger.error(
                    f"Could not launch background job '{spec.name}': {e}",
                    exc_info=True,
                    extra={"job": spec.name},
                )
        return tasks

    async def run(self) -> None:
        """Full lifecycle: wire, launch jobs, bind, serve until the server exits."""
        app = await self.wire()
        try:
            self.launch_background_jobs()
            try:
                sock = self.listener.bind()
            except Exception:
                self.phases.abort()
                raise
            self._enter(BootstrapPhase.LISTENING)
            await self.listener.serve(app, sock)
        finally:
            await self.supervisor.shutdown()
            await self.context.storage.dispose()


# ─── Composition root ───────────────────────────────────────────

def default_route_groups(context: StartupContext) -> list[RouteGroup]:
    return [create_health_group(), create_events_group()]


def default_jobs(context: StartupContext) -> list[JobSpec]:
    settings = context.settings
    specs: list[JobSpec] = []
    if settings.migrations_enabled:
        specs.append(JobSpec(
            name="migrate-db",
            run=MigrationJob(settings.database_url).run,
            policy=RestartPolicy(max_restarts=settings.migration_max_retries),
        ))
    if settings.stream_enabled:
        source = HttpNdjsonSource(
            settings.stream_url,
            name=settings.stream_source_name,
            read_timeout_seconds=settings.stream_read_timeout_seconds,
        )
        consumer = StreamConsumer(source, [
            StreamEventRecorder(context.storage, settings.stream_source_name),
            hub_publisher(context.hub),
        ])
        specs.append(JobSpec(
            name=f"consume-{settings.stream_source_name}",
            run=consumer.start,
            policy=RestartPolicy(
                max_restarts=None,
                base_delay_ms=settings.stream_restart_base_delay_ms,
                max_delay_ms=settings.stream_restart_max_delay_ms,
                restart_on_exit=True,
            ),
        ))
    return specs


def build_bootstrapper(settings: Settings) -> Bootstrapper:
    connector = DatabaseConnector(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        retries=settings.storage_connect_retries,
        base_delay_ms=settings.storage_connect_base_delay_ms,
        max_delay_ms=settings.storage_connect_max_delay_ms,
        deadline_seconds=settings.storage_connect_deadline_seconds,
    )
    listener = Listener(
        settings.host, settings.port, settings.environment, log_level=settings.log_level,
    )
    return Bootstrapper(
        settings,
        connector,
        listener,
        route_groups=default_route_groups,
        jobs=default_jobs,
    )

"""Job Supervisor — fire-and-forget background jobs with restart policy and health records.

Invariants:
    - launch() never awaits the job and never raises because of it
    - A job failure is logged and recorded in its JobHealth; it never propagates
      into the caller, the request path, or the event loop's exception handler
    - Restarts follow RestartPolicy: max_restarts=None means unbounded,
      delays use exponential backoff with jitter
    - Cancellation (shutdown) is not a failure: state becomes CANCELLED
    - health() is a snapshot; callers never see live mutable records

Design Decisions:
    - Supervision loop inside the task itself: no extra watcher task per job
    - Task references kept in a dict so running jobs are not garbage-collected
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable

from streamgate.core.backoff import backoff_delay_ms

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RestartPolicy:
    """How a job is restarted after failing (or exiting, for long-running jobs)."""
    max_restarts: int | None = 0
    base_delay_ms: int = 1000
    max_delay_ms: int = 60_000
    restart_on_exit: bool = False

    def allows(self, restarts_so_far: int) -> bool:
        return self.max_restarts is None or restarts_so_far < self.max_restarts


@dataclass(frozen=True)
class JobSpec:
    name: str
    run: Callable[[], Awaitable[None]]
    policy: RestartPolicy = RestartPolicy()


@dataclass
class JobHealth:
    name: str
    state: JobState = JobState.PENDING
    attempts: int = 0
    restarts: int = 0
    last_error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "attempts": self.attempts,
            "restarts": self.restarts,
            "lastError": self.last_error,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
        }


class JobSupervisor:
    """Launches and watches background jobs."""

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task] = {}
        self._health: dict[str, JobHealth] = {}

    def launch(self, spec: JobSpec) -> asyncio.Task:
        """Start `spec` as a supervised task and return immediately."""
        if spec.name in self._tasks and not self._tasks[spec.name].done():
            raise ValueError(f"Job '{spec.name}' is already running")
        self._health[spec.name] = JobHealth(name=spec.name)
        task = asyncio.create_task(self._supervise(spec), name=f"job:{spec.name}")
        self._tasks[spec.name] = task
        logger.info(f"Background job launched: {spec.name}", extra={"job": spec.name})
        return task

    def health(self) -> list[JobHealth]:
        return [replace(h) for h in self._health.values()]

    def health_of(self, name: str) -> JobHealth | None:
        h = self._health.get(name)
        return replace(h) if h else None

    async def wait(self, name: str) -> None:
        """Wait until the named job's supervision loop has finished."""
        task = self._tasks.get(name)
        if task is not None:
            await asyncio.wait({task})

    async def shutdown(self) -> None:
        """Cancel every job that is still running."""
        pending = [t for t in self._tasks.values() if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _supervise(self, spec: JobSpec) -> None:
        health = self._health[spec.name]
        try:
            while True:
                health.attempts += 1
                health.state = JobState.RUNNING
                health.started_at = datetime.now(timezone.utc)
                health.finished_at = None
                failed = False
                try:
                    await spec.run()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    failed = True
                    health.last_error = f"{type(e).__name__}: {e}"
                    logger.error(
                        f"Background job '{spec.name}' failed: {e}",
                        exc_info=True,
                        extra={"job": spec.name, "attempt": health.attempts},
                    )
                health.finished_at = datetime.now(timezone.utc)

                if not failed and not spec.policy.restart_on_exit:
                    health.state = JobState.SUCCEEDED
                    logger.info(
                        f"Background job '{spec.name}' finished",
                        extra={"job": spec.name, "attempt": health.attempts},
                    )
                    return
                if not spec.policy.allows(health.restarts):
                    health.state = JobState.FAILED if failed else JobState.SUCCEEDED
                    logger.error(
                        f"Background job '{spec.name}' gave up after {health.attempts} attempt(s)",
                        extra={"job": spec.name, "restarts": health.restarts},
                    )
                    return

                delay = backoff_delay_ms(
                    health.restarts, spec.policy.base_delay_ms, spec.policy.max_delay_ms,
                )
                health.state = JobState.BACKING_OFF
                health.restarts += 1
                logger.warning(
                    f"Restarting background job '{spec.name}' in {delay}ms",
                    extra={"job": spec.name, "restarts": health.restarts, "delay_ms": delay},
                )
                await self._sleep(delay / 1000)
        except asyncio.CancelledError:
            health.state = JobState.CANCELLED
            health.finished_at = datetime.now(timezone.utc)
            logger.info(f"Background job '{spec.name}' cancelled", extra={"job": spec.name})
            raise

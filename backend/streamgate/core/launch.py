"""Launch Metadata — immutable record of when and which version the process started.

Invariants:
    - launched_at is captured once, timezone-aware UTC, never mutated
    - launchAt in the payload is identical for every call on the same instance
    - launchFromNow is derived from the caller's clock, never negative

Design Decisions:
    - Passed explicitly through StartupContext instead of a module-level constant
    - humanize.naturaltime renders the relative string ("2 minutes ago")
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import humanize


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_launch_timestamp(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(
        timespec="milliseconds",
    ).replace("+00:00", "Z")


@dataclass(frozen=True)
class LaunchMetadata:
    """When the process started and which version it is running."""
    launched_at: datetime
    version: str

    @classmethod
    def capture(cls, version: str, now: datetime | None = None) -> "LaunchMetadata":
        launched_at = now or utc_now()
        if launched_at.tzinfo is None:
            raise ValueError("launched_at must be timezone-aware")
        return cls(launched_at=launched_at, version=version)

    def uptime(self, now: datetime) -> timedelta:
        return max(now - self.launched_at, timedelta(0))

    def to_payload(self, now: datetime) -> dict[str, str]:
        """Root endpoint body: version, launchAt, launchFromNow."""
        return {
            "version": self.version,
            "launchAt": format_launch_timestamp(self.launched_at),
            "launchFromNow": humanize.naturaltime(self.uptime(now)),
        }

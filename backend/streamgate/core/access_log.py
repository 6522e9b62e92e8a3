"""Access Log Lines — morgan-compatible preset formats for one request/response pair.

Invariants:
    - Missing values render as "-"
    - Response time renders with 3 decimals, in milliseconds
    - Output is a single line (no trailing newline)
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AccessRecord:
    """Everything an access line can mention about one exchange."""
    method: str
    url: str
    http_version: str
    status: int | None
    duration_ms: float
    timestamp: datetime
    remote_addr: str | None = None
    remote_user: str | None = None
    content_length: str | None = None
    referrer: str | None = None
    user_agent: str | None = None


def _dash(value: object) -> str:
    return "-" if value is None or value == "" else str(value)


def clf_date(ts: datetime) -> str:
    return ts.strftime("%d/%b/%Y:%H:%M:%S %z")


def _request_line(r: AccessRecord) -> str:
    return f"{r.method} {r.url} HTTP/{r.http_version}"


def _common(r: AccessRecord) -> str:
    return (
        f'{_dash(r.remote_addr)} - {_dash(r.remote_user)} [{clf_date(r.timestamp)}] '
        f'"{_request_line(r)}" {_dash(r.status)} {_dash(r.content_length)}'
    )


def _combined(r: AccessRecord) -> str:
    return f'{_common(r)} "{_dash(r.referrer)}" "{_dash(r.user_agent)}"'


def _dev(r: AccessRecord) -> str:
    return (
        f"{r.method} {r.url} {_dash(r.status)} {r.duration_ms:.3f} ms"
        f" - {_dash(r.content_length)}"
    )


def _short(r: AccessRecord) -> str:
    return (
        f"{_dash(r.remote_addr)} {_dash(r.remote_user)} {_request_line(r)} "
        f"{_dash(r.status)} {_dash(r.content_length)} - {r.duration_ms:.3f} ms"
    )


def _tiny(r: AccessRecord) -> str:
    return (
        f"{r.method} {r.url} {_dash(r.status)} {_dash(r.content_length)}"
        f" - {r.duration_ms:.3f} ms"
    )


_FORMATTERS = {
    "combined": _combined,
    "common": _common,
    "dev": _dev,
    "short": _short,
    "tiny": _tiny,
}


def format_access_line(fmt: str, record: AccessRecord) -> str:
    try:
        formatter = _FORMATTERS[fmt]
    except KeyError:
        raise ValueError(f"Unknown access log format '{fmt}'")
    return formatter(record)

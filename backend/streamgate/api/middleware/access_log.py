"""Access Log Middleware — one line per HTTP exchange on the streamgate.access logger.

Invariants:
    - Never mutates the request or the response
    - Logs even when the downstream app raises (status recorded as 500)
    - The URL logged is the one the client sent, before any query rewriting
"""

import logging
import time
from datetime import datetime, timezone

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from streamgate.core.access_log import AccessRecord, format_access_line

access_logger = logging.getLogger("streamgate.access")


class AccessLogMiddleware:
    def __init__(self, app: ASGIApp, fmt: str = "combined"):
        self.app = app
        self.fmt = fmt

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        timestamp = datetime.now(timezone.utc)
        started = time.perf_counter()
        response: dict = {"status": None, "content_length": None}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response["status"] = message["status"]
                response["content_length"] = Headers(
                    raw=message.get("headers", []),
                ).get("content-length")
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            if response["status"] is None:
                response["status"] = 500
            raise
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            self._log(scope, response, duration_ms, timestamp)

    def _log(self, scope: Scope, response: dict, duration_ms: float, timestamp: datetime) -> None:
        headers = Headers(scope=scope)
        url = scope.get("raw_path", b"").decode("latin-1") or scope["path"]
        query = scope.get("query_string", b"")
        if query and "?" not in url:
            url = f"{url}?{query.decode('latin-1')}"
        client = scope.get("client")
        record = AccessRecord(
            method=scope["method"],
            url=url,
            http_version=scope.get("http_version", "1.1"),
            status=response["status"],
            duration_ms=duration_ms,
            timestamp=timestamp,
            remote_addr=client[0] if client else None,
            content_length=response["content_length"],
            referrer=headers.get("referer"),
            user_agent=headers.get("user-agent"),
        )
        access_logger.info(
            format_access_line(self.fmt, record),
            extra={
                "method": record.method,
                "path": scope["path"],
                "status": record.status,
                "duration_ms": round(duration_ms, 3),
                "remote_addr": record.remote_addr,
            },
        )

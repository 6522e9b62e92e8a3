"""Stream Source — reads newline-delimited JSON messages from an upstream HTTP stream.

Invariants:
    - Yields one decoded JSON value per non-blank line, in arrival order
    - Undecodable lines are logged and skipped; they never end the stream
    - Transport failures and non-2xx responses raise StreamSourceError
    - A clean end of the upstream body simply ends iteration (caller decides to reconnect)
"""

import json
import logging
from typing import Any, AsyncIterator, Protocol

import httpx

from streamgate.core.errors import StreamSourceError

logger = logging.getLogger(__name__)


class MessageSource(Protocol):
    """Contract for upstream message streams consumed by StreamConsumer."""
    name: str

    def messages(self) -> AsyncIterator[Any]: ...


class HttpNdjsonSource:
    """Long-lived GET whose response body is NDJSON."""

    def __init__(
        self,
        url: str,
        name: str = "stream",
        read_timeout_seconds: float = 300.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.name = name
        self.read_timeout_seconds = read_timeout_seconds
        self.headers = {"Accept": "application/x-ndjson", **(headers or {})}
        self._transport = transport

    async def messages(self) -> AsyncIterator[Any]:
        timeout = httpx.Timeout(10.0, read=self.read_timeout_seconds)
        try:
            async with httpx.AsyncClient(
                timeout=timeout, transport=self._transport,
            ) as client:
                async with client.stream("GET", self.url, headers=self.headers) as response:
                    if response.status_code >= 400:
                        raise StreamSourceError(
                            f"{self.url} answered HTTP {response.status_code}",
                        )
                    logger.info(f"Connected to stream {self.url}", extra={"source": self.name})
                    async for line in response.aiter_lines():
                        message = decode_line(line, self.name)
                        if message is not None:
                            yield message
        except httpx.HTTPError as e:
            raise StreamSourceError(f"{type(e).__name__}: {e}") from e


def decode_line(line: str, source: str = "stream") -> Any | None:
    line = line.strip()
    if not line:
        return None
    try:
        return json.loads(line)
    except json.JSONDecodeError as e:
        logger.warning(
            f"Skipping undecodable stream line: {e.msg}",
            extra={"source": source},
        )
        return None

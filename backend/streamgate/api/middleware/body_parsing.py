"""Body Parsing Middleware — parses JSON and URL-encoded bodies before routing.

Invariants:
    - Parsed payload available as request.state.payload (JSON value or form dict)
    - Malformed bodies answer 400, oversized bodies 413, with the standard envelope,
      and never reach a route handler
    - Downstream handlers can still read the raw body (it is replayed once)
    - Other content types and non-HTTP scopes pass through unread
"""

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from streamgate.core.body_parsing import is_parsable, parse_body
from streamgate.core.errors import ErrorContext, GatewayError, MalformedBodyError, PayloadTooLargeError


class BodyParsingMiddleware:
    def __init__(self, app: ASGIApp, limit_bytes: int = 100 * 1024):
        self.app = app
        self.limit_bytes = limit_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        content_type = Headers(scope=scope).get("content-type", "")
        if not is_parsable(content_type):
            await self.app(scope, receive, send)
            return

        chunks: list[bytes] = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit_bytes:
                await self._reject(PayloadTooLargeError(self.limit_bytes), scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)
        body = b"".join(chunks)

        try:
            payload = parse_body(content_type, body)
        except MalformedBodyError as exc:
            await self._reject(exc, scope, receive, send)
            return
        scope.setdefault("state", {})["payload"] = payload

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, exc: GatewayError, scope: Scope, receive: Receive, send: Send) -> None:
        exc.context = ErrorContext(path=scope.get("path"))
        response = JSONResponse(status_code=exc.http_status, content=exc.to_response())
        await response(scope, receive, send)

"""Error Boundary Middleware — innermost layer turning unhandled exceptions into a 500 envelope.

Invariants:
    - The 500 is sent from inside the chain, so every outer layer (access log,
      CORS, security headers, compression) still applies to it
    - Never leaks internal details: body is build_internal_error_response()
    - If the response already started, the exception is re-raised untouched
    - Non-HTTP scopes pass through (WebSocket failures are handled by guard_upgrade)
"""

import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from streamgate.api.error_handlers import build_internal_error_response

logger = logging.getLogger(__name__)


class ErrorBoundaryMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if started:
                raise
            logger.error(
                f"Unhandled exception on {scope['path']}: {exc}",
                exc_info=True,
                extra={"path": scope["path"]},
            )
            response = JSONResponse(
                status_code=500, content=build_internal_error_response(),
            )
            await response(scope, receive, send)

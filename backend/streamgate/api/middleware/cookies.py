"""Cookie Parsing Middleware — exposes parsed cookies as request.state.cookies."""

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from streamgate.core.cookies import parse_cookie_header


class CookieParsingMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            header = Headers(scope=scope).get("cookie", "")
            scope.setdefault("state", {})["cookies"] = parse_cookie_header(header)
        await self.app(scope, receive, send)

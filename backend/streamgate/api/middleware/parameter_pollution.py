"""Parameter Pollution Middleware — rewrites the query string so each key appears once.

Invariants:
    - Duplicate keys keep their last value; whitelisted keys keep all values
    - Dropped multi-values are exposed as request.state.query_polluted, set
      (possibly empty) on every HTTP request
    - Requests without duplicates pass through with the query string untouched
"""

from starlette.types import ASGIApp, Receive, Scope, Send

from streamgate.core.query_params import collapse_query_string


class ParameterPollutionMiddleware:
    def __init__(self, app: ASGIApp, whitelist: tuple[str, ...] = ()):
        self.app = app
        self.whitelist = tuple(whitelist)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        if not scope.get("query_string"):
            state["query_polluted"] = {}
            await self.app(scope, receive, send)
            return

        raw = scope["query_string"].decode("latin-1")
        collapsed = collapse_query_string(raw, self.whitelist)
        state["query_polluted"] = collapsed.polluted
        if collapsed.polluted:
            scope = dict(scope)
            scope["query_string"] = collapsed.query_string.encode("latin-1")
        await self.app(scope, receive, send)

"""Routing — WebSocket-capable router, route groups, and the registrar.

Invariants:
    - GatewayRouter registers HTTP routes (APIRouter API) and WebSocket
      upgrade handlers (ws) on the same router object
    - A WebSocket handler failure affects only its own connection:
        before accept  -> HTTP denial response (or close when unsupported)
        after accept   -> close with 1011
        client gone    -> logged, nothing sent
    - Route groups mount under one prefix, in insertion order; names are unique
    - Exactly one unprefixed route: GET|HEAD "/" (launch information)

Design Decisions:
    - Subclass of APIRouter over patching a router instance: ws() exists from
      construction, so groups can register upgrade paths themselves
    - Unmatched unprefixed paths fall through to the framework 404, rendered
      by the error boundary
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.exceptions import WebSocketException
from starlette.websockets import WebSocketState

from streamgate.api.context import context_of
from streamgate.api.error_handlers import build_http_error_response, build_internal_error_response
from streamgate.core.errors import GatewayError

logger = logging.getLogger(__name__)

WebSocketHandler = Callable[..., Awaitable[None]]


def _find_websocket(args: tuple, kwargs: dict) -> WebSocket | None:
    for value in (*args, *kwargs.values()):
        if isinstance(value, WebSocket):
            return value
    return None


def _is_open(websocket: WebSocket) -> bool:
    return (
        websocket.application_state != WebSocketState.DISCONNECTED
        and websocket.client_state != WebSocketState.DISCONNECTED
    )


def _denial_for(exc: Exception) -> JSONResponse:
    if isinstance(exc, GatewayError):
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())
    if isinstance(exc, StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=build_http_error_response(exc.status_code, exc.detail),
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=build_internal_error_response(),
    )


async def _fail_upgrade(websocket: WebSocket, exc: Exception) -> None:
    if websocket.application_state == WebSocketState.CONNECTING:
        if "websocket.http.response" in websocket.scope.get("extensions", {}):
            await websocket.send_denial_response(_denial_for(exc))
        else:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    elif _is_open(websocket):
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)


def guard_upgrade(handler: WebSocketHandler) -> WebSocketHandler:
    """Contain every failure of `handler` inside its own connection."""

    @functools.wraps(handler)
    async def guarded(*args: Any, **kwargs: Any) -> None:
        websocket = _find_websocket(args, kwargs)
        try:
            await handler(*args, **kwargs)
        except WebSocketDisconnect as e:
            logger.info(
                f"WebSocket client disconnected (code={e.code})",
                extra={"path": websocket.url.path if websocket else None},
            )
        except WebSocketException as e:
            if websocket is not None and _is_open(websocket):
                await websocket.close(code=e.code, reason=e.reason)
        except Exception as e:
            path = websocket.url.path if websocket else None
            logger.error(
                f"WebSocket handler failed on {path}: {e}",
                exc_info=True,
                extra={"path": path},
            )
            if websocket is not None:
                await _fail_upgrade(websocket, e)

    return guarded


class GatewayRouter(APIRouter):
    """APIRouter that also registers WebSocket upgrade handlers through ws()."""

    def ws(
        self, path: str, handler: WebSocketHandler | None = None, *, name: str | None = None,
    ):
        """Register `handler` for upgrades on `path`.

        Usable directly (router.ws("/x", handler)) or as a decorator
        (@router.ws("/x")).
        """
        def register(func: WebSocketHandler) -> WebSocketHandler:
            self.add_api_websocket_route(path, guard_upgrade(func), name=name or func.__name__)
            return func

        if handler is None:
            return register
        register(handler)
        return self


@dataclass(frozen=True)
class RouteGroup:
    """A named, mountable collection of HTTP and WebSocket routes."""
    name: str
    router: APIRouter


def validate_prefix(prefix: str) -> str:
    if not prefix.startswith("/") or prefix.endswith("/"):
        raise ValueError(f"Route prefix must start with '/' and not end with '/': {prefix!r}")
    return prefix


def register_route_groups(app: FastAPI, groups: list[RouteGroup], prefix: str) -> None:
    """Mount every group under `prefix`, in order."""
    validate_prefix(prefix)
    seen: set[str] = set()
    for group in groups:
        if group.name in seen:
            raise ValueError(f"Duplicate route group: {group.name}")
        seen.add(group.name)
        app.include_router(group.router, prefix=prefix)
        logger.info(f"Mounted route group '{group.name}' under {prefix}")


def register_root_endpoint(app: FastAPI) -> None:
    """Install the single unprefixed launch-information endpoint."""

    @app.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
    async def launch_info(request: Request) -> dict[str, str]:
        context = context_of(request)
        return context.launch.to_payload(context.clock())

"""Routing — route group registration and the WebSocket-capable router."""

import pytest
from fastapi import FastAPI, WebSocket
from starlette.routing import WebSocketRoute

from streamgate.api.routing import (
    GatewayRouter, RouteGroup, register_route_groups, validate_prefix,
)


def _group(name: str, path: str) -> RouteGroup:
    router = GatewayRouter()

    @router.get(path)
    async def handler():
        return {"group": name}

    return RouteGroup(name=name, router=router)


def test_groups_mount_under_prefix_in_order():
    app = FastAPI()
    register_route_groups(app, [_group("a", "/a"), _group("b", "/b")], "/v3")
    paths = [route.path for route in app.routes if route.path.startswith("/v3")]
    assert paths == ["/v3/a", "/v3/b"]


def test_duplicate_group_names_are_rejected():
    with pytest.raises(ValueError, match="Duplicate route group"):
        register_route_groups(FastAPI(), [_group("a", "/x"), _group("a", "/y")], "/v3")


@pytest.mark.parametrize("prefix", ["v3", "/v3/", ""])
def test_invalid_prefixes(prefix):
    with pytest.raises(ValueError):
        validate_prefix(prefix)


def test_ws_registers_directly_and_as_decorator():
    router = GatewayRouter()

    async def direct(websocket: WebSocket):
        await websocket.accept()

    assert router.ws("/direct", direct) is router

    @router.ws("/decorated")
    async def decorated(websocket: WebSocket):
        await websocket.accept()

    assert decorated.__name__ == "decorated"
    ws_paths = {route.path for route in router.routes if isinstance(route, WebSocketRoute)}
    assert ws_paths == {"/direct", "/decorated"}

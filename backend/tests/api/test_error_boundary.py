"""Error Boundary — failures become structured responses, the process keeps serving.

Invariants:
    - Unhandled handler exception → 500 INTERNAL_ERROR, no internal details leaked
    - That 500 still passes the outer layers: CORS, security headers, access log
    - GatewayError → its own status and code, with the request path
    - Query validation failures → 400 VALIDATION_ERROR with field details
    - A failed request never affects the next one
"""

import logging

import pytest

from streamgate.api.middleware.error_boundary import ErrorBoundaryMiddleware
from tests.api.sample_routes import ALLOWED_ORIGIN


async def test_unhandled_exception_is_500_without_details(client):
    res = await client.get("/v3/sample/boom")
    assert res.status_code == 500
    assert res.json()["error"]["code"] == "INTERNAL_ERROR"
    assert "secret" not in res.text


async def test_unhandled_exception_500_carries_security_and_cors_headers(client):
    res = await client.get("/v3/sample/boom", headers={"Origin": ALLOWED_ORIGIN})
    assert res.status_code == 500
    assert res.headers["x-content-type-options"] == "nosniff"
    assert res.headers["x-frame-options"] == "SAMEORIGIN"
    assert res.headers["access-control-allow-origin"] == ALLOWED_ORIGIN


async def test_unhandled_exception_is_access_logged_as_500(client, caplog):
    caplog.set_level(logging.INFO, logger="streamgate.access")
    await client.get("/v3/sample/boom")

    records = [r for r in caplog.records if r.name == "streamgate.access"]
    assert len(records) == 1
    assert records[0].status == 500


async def test_gateway_error_keeps_its_status_and_path(client):
    res = await client.get("/v3/sample/missing")
    assert res.status_code == 404
    error = res.json()["error"]
    assert error["code"] == "RESOURCE_NOT_FOUND"
    assert error["message"] == "Widget '42' not found"
    assert error["path"] == "/v3/sample/missing"


async def test_validation_error_is_400_with_details(client):
    res = await client.get("/v3/events/recent?limit=0")
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["field"] == "query.limit"


async def test_server_keeps_serving_after_a_failure(client):
    await client.get("/v3/sample/boom")
    res = await client.get("/v3/health")
    assert res.status_code == 200


# ─── Boundary in isolation ──────────────────────────────────────

async def _receive():
    return {"type": "http.request", "body": b"", "more_body": False}


async def test_failure_after_response_started_is_reraised():
    async def half_sent(scope, receive, send):
        await send({"type": "http.response.start", "status": 200, "headers": []})
        raise RuntimeError("stream broke")

    sent = []

    async def send(message):
        sent.append(message)

    boundary = ErrorBoundaryMiddleware(half_sent)
    with pytest.raises(RuntimeError):
        await boundary({"type": "http", "path": "/stream", "headers": []}, _receive, send)
    assert [m["type"] for m in sent] == ["http.response.start"]


async def test_failure_before_response_is_rendered_as_500():
    async def broken(scope, receive, send):
        raise RuntimeError("secret internal detail")

    sent = []

    async def send(message):
        sent.append(message)

    boundary = ErrorBoundaryMiddleware(broken)
    await boundary({"type": "http", "path": "/x", "headers": []}, _receive, send)

    assert sent[0]["type"] == "http.response.start"
    assert sent[0]["status"] == 500
    assert b"INTERNAL_ERROR" in sent[1]["body"]
    assert b"secret" not in sent[1]["body"]

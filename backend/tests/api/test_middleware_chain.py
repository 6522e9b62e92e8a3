"""Middleware Chain — every layer observed through real requests.

Invariants:
    - CORS: allowed origin echoed; other origins get no CORS headers;
      rejected preflight answers 400 with the error envelope
    - Duplicate query keys collapse to the last value (whitelist excepted)
    - Security headers on every response, x-powered-by never present
    - Responses above the gzip threshold are compressed when accepted
    - JSON and URL-encoded bodies parsed before routing; malformed → 400,
      oversized → 413, neither reaches the handler
    - Cookies parsed, j: values JSON-decoded
    - One access line per request
"""

import json
import logging

from tests.api.sample_routes import ALLOWED_ORIGIN


# ─── CORS ───────────────────────────────────────────────────────

async def test_allowed_origin_is_echoed(client):
    res = await client.get("/v3/health", headers={"Origin": ALLOWED_ORIGIN})
    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
    assert res.headers["access-control-allow-credentials"] == "true"


async def test_other_origin_is_served_without_cors_headers(client):
    res = await client.get("/v3/health", headers={"Origin": "http://evil.example"})
    assert res.status_code == 200
    assert "access-control-allow-origin" not in res.headers


async def test_preflight_from_allowed_origin(client):
    res = await client.options("/v3/health", headers={
        "Origin": ALLOWED_ORIGIN,
        "Access-Control-Request-Method": "GET",
    })
    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == ALLOWED_ORIGIN


async def test_rejected_preflight_is_structured_400(client):
    res = await client.options("/v3/health", headers={
        "Origin": "http://evil.example",
        "Access-Control-Request-Method": "GET",
    })
    assert res.status_code == 400
    body = res.json()
    assert body["error"]["code"] == "CORS_REJECTED"
    assert "origin" in body["error"]["message"].lower()


# ─── Parameter pollution ────────────────────────────────────────

async def test_duplicate_query_key_keeps_last_value(client):
    res = await client.get("/v3/sample/echo?sort=asc&sort=desc&page=1")
    body = res.json()
    assert body["query"] == [["sort", "desc"], ["page", "1"]]
    assert body["polluted"] == {"sort": ["asc", "desc"]}


async def test_whitelisted_query_key_keeps_every_value(client):
    res = await client.get("/v3/sample/echo?tag=a&tag=b")
    assert res.json()["query"] == [["tag", "a"], ["tag", "b"]]
    assert res.json()["polluted"] == {}


async def test_request_without_query_has_empty_pollution_state(client):
    res = await client.get("/v3/sample/echo")
    assert res.status_code == 200
    assert res.json()["query"] == []
    assert res.json()["polluted"] == {}


async def test_same_polluted_query_collapses_the_same_way_each_time(client):
    url = "/v3/sample/echo?sort=asc&page=1&sort=desc&tag=a&page=2&tag=b"
    first = await client.get(url)
    second = await client.get(url)

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert first.json()["query"] == [["sort", "desc"], ["page", "2"], ["tag", "a"], ["tag", "b"]]


# ─── Security headers ───────────────────────────────────────────

async def test_security_headers_on_success(client):
    res = await client.get("/v3/health")
    assert res.headers["x-content-type-options"] == "nosniff"
    assert res.headers["x-frame-options"] == "SAMEORIGIN"
    assert res.headers["strict-transport-security"].startswith("max-age=15552000")
    assert "x-powered-by" not in res.headers


async def test_security_headers_on_not_found(client):
    res = await client.get("/v3/nowhere")
    assert res.status_code == 404
    assert res.headers["referrer-policy"] == "no-referrer"


# ─── Compression ────────────────────────────────────────────────

async def test_large_response_is_gzipped(client):
    res = await client.get("/v3/sample/large", headers={"Accept-Encoding": "gzip"})
    assert res.headers["content-encoding"] == "gzip"
    assert res.json()["data"] == "x" * 5000


async def test_small_response_is_not_compressed(client):
    res = await client.get("/v3/health", headers={"Accept-Encoding": "gzip"})
    assert "content-encoding" not in res.headers


# ─── Body parsing ───────────────────────────────────────────────

async def test_json_body_is_parsed_and_raw_body_still_readable(client):
    res = await client.post("/v3/sample/echo", json={"a": 1, "b": [1, 2]})
    assert res.status_code == 200
    body = res.json()
    assert body["payload"] == {"a": 1, "b": [1, 2]}
    assert json.loads(body["raw"]) == {"a": 1, "b": [1, 2]}


async def test_urlencoded_body_is_parsed_with_nesting(client):
    res = await client.post(
        "/v3/sample/echo",
        content=b"user[name]=ada&ids[]=1&ids[]=2",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert res.json()["payload"] == {"user": {"name": "ada"}, "ids": ["1", "2"]}


async def test_malformed_json_is_400(client):
    res = await client.post(
        "/v3/sample/echo",
        content=b'{"a": ',
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "MALFORMED_BODY"
    assert error["path"] == "/v3/sample/echo"


async def test_oversized_body_is_413(client):
    res = await client.post(
        "/v3/sample/echo",
        content=json.dumps({"a": "x" * 2000}).encode(),
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 413
    assert res.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"


async def test_other_content_types_reach_the_handler_unparsed(client):
    res = await client.post(
        "/v3/sample/echo", content=b"plain words", headers={"Content-Type": "text/plain"},
    )
    assert res.json() == {"payload": None, "raw": "plain words"}


# ─── Cookies ────────────────────────────────────────────────────

async def test_cookies_are_parsed(client):
    res = await client.get(
        "/v3/sample/echo",
        headers={"Cookie": 'session=abc; prefs=j:{"theme":"dark"}'},
    )
    assert res.json()["cookies"] == {"session": "abc", "prefs": {"theme": "dark"}}


# ─── Access log ─────────────────────────────────────────────────

async def test_one_access_line_per_request(client, caplog):
    caplog.set_level(logging.INFO, logger="streamgate.access")
    await client.get("/v3/health?check=1", headers={"User-Agent": "pytest-agent"})

    records = [r for r in caplog.records if r.name == "streamgate.access"]
    assert len(records) == 1
    line = records[0].getMessage()
    assert '"GET /v3/health?check=1 HTTP/1.1" 200' in line
    assert '"pytest-agent"' in line
    assert records[0].status == 200

"""API test fixtures — app wired by the real Bootstrapper over a SQLite file.

Invariants:
    - Every test gets a fresh SQLite database under tmp_path
    - The app is built exactly as in production: middleware chain, route
      groups under the prefix, root endpoint, error boundary
    - An extra "sample" group exercises middleware and error paths
    - No background jobs are launched and no socket is bound

Design Decisions:
    - raise_app_exceptions=False: ServerErrorMiddleware re-raises after
      sending the 500, the client should see the response like a real one
"""

import pytest
from httpx import ASGITransport, AsyncClient

from streamgate.config import load_settings
from streamgate.db.base import Base
from streamgate.infrastructure.database import DatabaseSessionManager
from tests.api.sample_routes import ALLOWED_ORIGIN, build_test_bootstrapper
from tests.fakes import ManualClock


@pytest.fixture
def settings(tmp_path):
    return load_settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}",
        environment="test",
        app_version="9.9.9",
        cors_origins=ALLOWED_ORIGIN,
        hpp_whitelist="tag",
        gzip_minimum_size=500,
        body_limit_bytes=1024,
        migrations_enabled=False,
        stream_enabled=False,
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
async def storage(settings):
    manager = DatabaseSessionManager(settings.database_url)
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()


@pytest.fixture
async def bootstrapper(settings, storage, clock):
    return build_test_bootstrapper(settings, storage, clock)


@pytest.fixture
async def app(bootstrapper):
    return await bootstrapper.wire()


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as c:
        yield c

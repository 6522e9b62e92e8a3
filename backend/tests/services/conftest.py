"""Service test fixtures — async SQLite storage and a recording sleep.

Invariants:
    - Every test gets a fresh SQLite file under tmp_path, schema created from metadata
    - recording_sleep never waits: it only records requested delays
"""

import pytest

from streamgate.db.base import Base
from streamgate.infrastructure.database import DatabaseSessionManager


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
async def storage(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'services.db'}")
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()

"""Migration Job — one-shot `alembic upgrade head` run as a background job.

Invariants:
    - Runs in a worker thread (alembic's env.py drives its own event loop)
    - Any alembic/SQLAlchemy failure surfaces as MigrationError
"""

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from streamgate.core.errors import MigrationError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def build_alembic_config(database_url: str, script_location: Path = MIGRATIONS_DIR) -> Config:
    config = Config()
    config.set_main_option("script_location", str(script_location))
    config.attributes["database_url"] = database_url
    config.attributes["configure_logger"] = False
    return config


class MigrationJob:
    """Brings the schema to the latest revision."""

    def __init__(self, database_url: str, revision: str = "head"):
        self.database_url = database_url
        self.revision = revision

    async def run(self) -> None:
        logger.info(f"Running schema migrations to '{self.revision}'")
        try:
            await asyncio.to_thread(self._upgrade)
        except Exception as e:
            raise MigrationError(str(e)) from e
        logger.info("Schema migrations complete")

    def _upgrade(self) -> None:
        command.upgrade(build_alembic_config(self.database_url), self.revision)

"""Root conftest — shared test configuration."""

import os

# Never reach a real database or upstream stream from the test suite
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("MIGRATIONS_ENABLED", "false")
os.environ.setdefault("STREAM_ENABLED", "false")

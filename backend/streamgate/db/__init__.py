"""Database Infrastructure — SQLAlchemy Base and ORM metadata.

Invariants:
    - All sessions are async (AsyncSession), created by DatabaseSessionManager
"""

"""Infrastructure Layer — storage, upstream stream, listener socket, and logging.

Invariants:
    - Infrastructure depends on core/ only for errors and pure helpers
    - All external calls wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients (SQLAlchemy engine, httpx, uvicorn)
"""

"""HTTP Middleware — cross-cutting request processors applied before routing."""

from streamgate.api.middleware.chain import build_middleware_chain

__all__ = ["build_middleware_chain"]

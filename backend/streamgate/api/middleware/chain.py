"""Middleware Chain — the fixed, ordered request-processing layers.

Invariants:
    - Order (outermost first): access log, CORS, parameter pollution,
      security headers, compression, body parsing, cookie parsing,
      error boundary (innermost, so unhandled-exception 500s pass every layer)
    - A layer that answers early (CORS preflight, malformed body) bypasses
      every layer after it
    - Built from Settings only; same settings always give the same chain
"""

from starlette.middleware import Middleware
from starlette.middleware.gzip import GZipMiddleware

from streamgate.config import Settings
from streamgate.api.middleware.access_log import AccessLogMiddleware
from streamgate.api.middleware.body_parsing import BodyParsingMiddleware
from streamgate.api.middleware.cookies import CookieParsingMiddleware
from streamgate.api.middleware.error_boundary import ErrorBoundaryMiddleware
from streamgate.api.middleware.cors import StructuredCORSMiddleware
from streamgate.api.middleware.parameter_pollution import ParameterPollutionMiddleware
from streamgate.api.middleware.security_headers import SecurityHeadersMiddleware


def build_middleware_chain(settings: Settings) -> list[Middleware]:
    """Return the chain outermost-first, ready for FastAPI(middleware=...)."""
    return [
        Middleware(AccessLogMiddleware, fmt=settings.access_log_format),
        Middleware(
            StructuredCORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=settings.cors_credentials,
            allow_methods=["*"],
            allow_headers=["*"],
        ),
        Middleware(ParameterPollutionMiddleware, whitelist=settings.hpp_whitelisted_params),
        Middleware(SecurityHeadersMiddleware),
        Middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size),
        Middleware(BodyParsingMiddleware, limit_bytes=settings.body_limit_bytes),
        Middleware(CookieParsingMiddleware),
        Middleware(ErrorBoundaryMiddleware),
    ]

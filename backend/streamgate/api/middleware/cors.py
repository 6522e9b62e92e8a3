"""CORS Middleware — Starlette's policy with structured JSON preflight rejections.

Invariants:
    - Allowed origins receive Access-Control-Allow-Origin (and -Credentials when enabled)
    - Simple requests from other origins are served without any CORS headers
    - Rejected preflights answer 400 with the standard error envelope
"""

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response

from streamgate.core.errors import CorsRejectedError

_BODY_HEADERS = {"content-length", "content-type"}


class StructuredCORSMiddleware(CORSMiddleware):
    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code < 400:
            return response
        reason = bytes(response.body).decode("utf-8", "replace")
        headers = {
            k: v for k, v in response.headers.items() if k.lower() not in _BODY_HEADERS
        }
        error = CorsRejectedError(reason)
        return JSONResponse(
            status_code=error.http_status, content=error.to_response(), headers=headers,
        )

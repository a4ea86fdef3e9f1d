"""
CORS and preflight handling for MCP hosts that embed the server in an iframe.
"""
from typing import Callable, Dict, Optional

from fastapi import Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest

ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOWED_HEADERS = ", ".join([
    "Content-Type",
    "Accept",
    "Authorization",
    "X-Requested-With",
    "X-MCP-Version",
    "Mcp-Session-Id",
    "Last-Event-ID",
])
EXPOSED_HEADERS = "Mcp-Session-Id, X-Request-ID"
PREFLIGHT_MAX_AGE = "86400"


def cors_headers(origin: Optional[str]) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin or "*",
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Credentials": "true",
    }


def preflight_response(origin: Optional[str]) -> Response:
    """Empty 204 answer to an OPTIONS request."""
    headers = cors_headers(origin)
    headers["Access-Control-Max-Age"] = PREFLIGHT_MAX_AGE
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Answers preflights directly and adds CORS and security headers to every other response."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: StarletteRequest, call_next: Callable):
        origin = request.headers.get("origin")

        if request.method == "OPTIONS":
            return preflight_response(origin)

        response = await call_next(request)

        response.headers.update(cors_headers(origin))
        response.headers["Access-Control-Expose-Headers"] = EXPOSED_HEADERS
        response.headers["X-Frame-Options"] = "ALLOWALL"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "origin-when-cross-origin"
        if self.debug:
            response.headers["X-Debug-Path"] = request.url.path

        return response

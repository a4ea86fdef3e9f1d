"""
Error handling middleware for the MCP HTTP application.

Exceptions that escape a route are answered in the dialect of the path they
hit: JSON-RPC error envelopes on the MCP endpoint, ``ErrorResponse`` bodies
everywhere else (e.g. ``/health``).
"""
import logging
import uuid
from typing import Callable, Sequence
from fastapi import Request
from fastapi.responses import JSONResponse
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest

logger = logging.getLogger("calcufy.error_handling")

__all__ = ['ErrorHandlingMiddleware', 'setup_error_handling', 'build_error_response']

DEFAULT_JSONRPC_PATHS = ("/mcp",)


def _current_trace_id() -> str:
    span = trace.get_current_span()
    context = span.get_span_context() if span else None
    return format(context.trace_id, "032x") if context and context.is_valid else ""


def _is_jsonrpc_path(path: str, jsonrpc_paths: Sequence[str]) -> bool:
    return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in jsonrpc_paths)


def build_error_response(
    request: StarletteRequest,
    exc: Exception,
    request_id: str,
    jsonrpc_paths: Sequence[str] = DEFAULT_JSONRPC_PATHS,
) -> JSONResponse:
    """
    Log an escaped exception and render it for the client.

    Unknown exceptions are wrapped as ``unknown_error`` (HTTP 500, JSON-RPC
    -32603). The HTTP status always comes from the error.
    """
    from error_handling import CalcufyError, ErrorResponse, log_error

    error = CalcufyError.from_exception(exc)
    trace_id = _current_trace_id()

    log_error(
        error,
        logger,
        request_id=request_id,
        level=logging.ERROR if error.status_code >= 500 else logging.WARNING,
        extra={"path": request.url.path, "method": request.method, "trace_id": trace_id},
    )

    if _is_jsonrpc_path(request.url.path, jsonrpc_paths):
        # No message id survives an escaped failure
        content = {"jsonrpc": "2.0", "id": None, "error": error.to_jsonrpc()}
    else:
        content = ErrorResponse(error=error.to_dict(request_id=request_id, trace_id=trace_id)).model_dump()

    headers = {"X-Request-ID": request_id, "Cache-Control": "no-store"}
    if trace_id:
        headers["X-Trace-ID"] = trace_id
    return JSONResponse(content=content, status_code=error.status_code, headers=headers)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Assigns request ids and turns exceptions escaping the app into error responses."""

    def __init__(self, app, jsonrpc_paths: Sequence[str] = DEFAULT_JSONRPC_PATHS):
        super().__init__(app)
        self.jsonrpc_paths = tuple(jsonrpc_paths)

    async def dispatch(self, request: StarletteRequest, call_next: Callable):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as exc:
            return build_error_response(request, exc, request_id, self.jsonrpc_paths)

        response.headers["X-Request-ID"] = request_id
        trace_id = _current_trace_id()
        if trace_id:
            response.headers["X-Trace-ID"] = trace_id
        return response


def setup_error_handling(app, jsonrpc_paths: Sequence[str] = DEFAULT_JSONRPC_PATHS) -> None:
    """Install the middleware plus handlers for application errors and unexpected 500s."""
    from error_handling import CalcufyError

    app.add_middleware(ErrorHandlingMiddleware, jsonrpc_paths=jsonrpc_paths)

    def _request_id(request: Request) -> str:
        return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or str(uuid.uuid4())

    @app.exception_handler(CalcufyError)
    async def calcufy_error_handler(request: Request, exc: CalcufyError) -> JSONResponse:
        return build_error_response(request, exc, _request_id(request), jsonrpc_paths)

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return build_error_response(request, exc, _request_id(request), jsonrpc_paths)

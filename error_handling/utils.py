"""
Utility functions for error handling and tracing integration.
"""
import os
import uuid
import logging
import inspect
from typing import Optional, Dict, Any
from functools import wraps
from fastapi import Request
from starlette.types import ASGIApp

__all__ = ['ErrorHandlingConfig', 'setup_app', 'trace_function']


class ErrorHandlingConfig:
    """Configuration for error handling and tracing."""

    def __init__(
        self,
        service_name: str = "calcufy-mcp",
        environment: str = "development",
        otlp_endpoint: Optional[str] = None,
        enable_tracing: bool = True,
        enable_error_handling: bool = True,
        log_level: str = "INFO",
        service_version: str = "1.0.0"
    ):
        self.service_name = service_name
        self.environment = environment
        self.otlp_endpoint = otlp_endpoint
        self.enable_tracing = enable_tracing
        self.enable_error_handling = enable_error_handling
        self.log_level = log_level
        self.service_version = service_version

    @classmethod
    def from_env(cls, service_name: str = "calcufy-mcp", service_version: str = "1.0.0") -> "ErrorHandlingConfig":
        """Build a config from ENV, LOG_LEVEL, ENABLE_TRACING and OTEL_EXPORTER_OTLP_ENDPOINT."""
        return cls(
            service_name=service_name,
            environment=os.getenv("ENV", "development"),
            otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"),
            enable_tracing=os.getenv("ENABLE_TRACING", "true").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            service_version=service_version,
        )


def setup_app(
    app: ASGIApp,
    config: Optional[ErrorHandlingConfig] = None
) -> ASGIApp:
    """
    Set up error handling and tracing for a FastAPI application.

    Args:
        app: The FastAPI application
        config: Configuration for error handling and tracing

    Returns:
        The configured FastAPI application
    """
    config = config or ErrorHandlingConfig()

    logging.basicConfig(level=config.log_level)
    logger = logging.getLogger(config.service_name)
    logger.setLevel(config.log_level)

    # Import here to avoid circular dependency
    from .tracing import setup_tracing, instrument_fastapi
    from .middleware import setup_error_handling

    if config.enable_tracing:
        setup_tracing(
            service_name=config.service_name,
            environment=config.environment,
            otlp_endpoint=config.otlp_endpoint,
            service_version=config.service_version
        )
        instrument_fastapi(app)

    if config.enable_error_handling:
        # ErrorHandlingMiddleware assigns and echoes the request id
        setup_error_handling(app)
        return app

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response

    return app


def trace_function(
    name: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None,
    record_exception: bool = True
):
    """
    Decorator to trace function execution with OpenTelemetry.

    Args:
        name: Custom span name (defaults to function name)
        attributes: Additional attributes to add to the span
        record_exception: Whether to record exceptions in the span
    """
    from .tracing import get_tracer
    from opentelemetry.trace import Status, StatusCode

    def decorator(func):
        span_name = name or f"{func.__module__}.{func.__name__}"

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(
                span_name,
                attributes=attributes or {}
            ) as span:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if record_exception:
                        span.record_exception(e)
                        span.set_status(Status(StatusCode.ERROR, str(e)))
                    raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(
                span_name,
                attributes=attributes or {}
            ) as span:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if record_exception:
                        span.record_exception(e)
                        span.set_status(Status(StatusCode.ERROR, str(e)))
                    raise

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator

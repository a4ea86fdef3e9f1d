"""
Error handling module for the Calcufy MCP server.

This module provides a structured way to handle and report errors across the
application, and maps them onto JSON-RPC error objects at the MCP boundary.
"""
from enum import Enum
from typing import Optional, Dict, Any, Union
import logging
from fastapi import status
from mcp.types import ErrorData, INTERNAL_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR
from pydantic import BaseModel

# Import all from submodules to make them available at the package level
from .tracing import *
from .middleware import *
from .utils import *

# Re-export all error-related classes and functions
__all__ = [
    # Error codes and base classes
    'ErrorCode',
    'ErrorResponse',
    'CalcufyError',

    # MCP error taxonomy
    'ProtocolError',
    'ParseError',
    'MethodNotFoundError',
    'ToolNotFoundError',
    'ValidationError',
    'ToolExecutionError',
    'DomainError',

    # Utility functions
    'log_error',
    'setup_error_handling',
    'ErrorHandlingMiddleware',
    'build_error_response',

    # Tracing
    'setup_tracing',
    'get_tracer',
    'trace_span',
    'instrument_fastapi',

    # Utils
    'ErrorHandlingConfig',
    'setup_app',
    'trace_function',
]


class ErrorCode(str, Enum):
    """Standard error codes for the application."""
    # Protocol Errors
    PARSE_ERROR = "parse_error"
    INVALID_REQUEST = "invalid_request"
    METHOD_NOT_FOUND = "method_not_found"

    # Tool Errors
    TOOL_NOT_FOUND = "tool_not_found"
    VALIDATION_ERROR = "validation_error"
    TOOL_EXECUTION_ERROR = "tool_execution_error"

    # Domain Errors
    CALCULATION_ERROR = "calculation_error"

    # Unknown Error
    UNKNOWN_ERROR = "unknown_error"


class ErrorResponse(BaseModel):
    """Standard error response format for non-MCP API responses."""
    error: Dict[str, Any]

    class Config:
        json_schema_extra = {
            "example": {
                "error": {
                    "code": "unknown_error",
                    "message": "An unexpected error occurred",
                    "details": {"exception_type": "RuntimeError"},
                    "request_id": "req_12345",
                    "trace_id": "trace_12345"
                }
            }
        }


class CalcufyError(Exception):
    """Base exception class for all Calcufy application errors."""

    jsonrpc_code: int = INTERNAL_ERROR

    def __init__(
        self,
        code: Union[ErrorCode, str],
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        retryable: bool = False
    ):
        self.code = ErrorCode(code) if isinstance(code, str) else code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.cause = cause
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self, request_id: str = "", trace_id: str = "") -> Dict[str, Any]:
        """Convert the error to a dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "request_id": request_id,
            "trace_id": trace_id,
            "retryable": self.retryable
        }

    def to_jsonrpc(self) -> Dict[str, Any]:
        """Convert the error to a JSON-RPC error object."""
        data = {"type": self.code.value, **self.details} if self.details else None
        return ErrorData(code=self.jsonrpc_code, message=self.message, data=data).model_dump(
            exclude_none=True
        )

    @classmethod
    def from_exception(cls, exc: Exception) -> 'CalcufyError':
        """Create a CalcufyError from a generic exception."""
        if isinstance(exc, CalcufyError):
            return exc
        return cls(
            code=ErrorCode.UNKNOWN_ERROR,
            message=str(exc) or "An unknown error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"exception_type": exc.__class__.__name__},
            cause=exc
        )


class ProtocolError(CalcufyError):
    """Malformed JSON-RPC envelope."""

    jsonrpc_code = INVALID_REQUEST

    def __init__(self, message: str = "Invalid Request", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.INVALID_REQUEST,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ParseError(ProtocolError):
    """Request body is not valid JSON."""

    jsonrpc_code = PARSE_ERROR

    def __init__(self, message: str = "Parse error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)
        self.code = ErrorCode.PARSE_ERROR


class MethodNotFoundError(CalcufyError):
    jsonrpc_code = METHOD_NOT_FOUND

    def __init__(self, method: str):
        super().__init__(
            code=ErrorCode.METHOD_NOT_FOUND,
            message="Method not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"method": method}
        )


class ToolNotFoundError(CalcufyError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            code=ErrorCode.TOOL_NOT_FOUND,
            message=f"Tool not found: {name}",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"tool": name}
        )


class ValidationError(CalcufyError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            status_code=422,
            details=details
        )


class ToolExecutionError(CalcufyError):
    """A tool handler failed; keeps the handler's message and the attempted arguments."""

    def __init__(self, name: str, message: str, arguments: Dict[str, Any], cause: Optional[Exception] = None):
        self.name = name
        self.arguments = arguments
        super().__init__(
            code=ErrorCode.TOOL_EXECUTION_ERROR,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"tool": name, "arguments": arguments},
            cause=cause
        )


class DomainError(CalcufyError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.CALCULATION_ERROR,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


def log_error(
    error: Exception,
    logger: logging.Logger,
    request_id: str = "",
    level: int = logging.ERROR,
    extra: Optional[Dict[str, Any]] = None
) -> None:
    """
    Helper function to log errors with structured context.

    Args:
        error: The exception to log
        logger: Logger instance to use
        request_id: Optional request ID for correlation
        level: Log level (default: ERROR)
        extra: Additional context to include in the log
    """
    extra = extra or {}
    if request_id:
        extra["request_id"] = request_id

    if isinstance(error, CalcufyError):
        extra.update({
            "error_code": error.code.value,
            "status_code": error.status_code,
            "retryable": error.retryable,
            "error_details": error.details,
        })
        if error.cause:
            extra["cause"] = str(error.cause)
    else:
        extra.update({
            "error_type": error.__class__.__name__,
            "error_message": str(error)
        })

    logger.log(level, str(error), extra=extra, exc_info=level >= logging.ERROR)

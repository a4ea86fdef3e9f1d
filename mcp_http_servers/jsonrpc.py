"""
JSON-RPC 2.0 envelope handling for the MCP endpoint.
"""
import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Union

from mcp.types import ErrorData, INTERNAL_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR
from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr
from pydantic import ValidationError as PydanticValidationError

from error_handling import CalcufyError, ProtocolError

__all__ = [
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INTERNAL_ERROR",
    "JsonRpcRequest",
    "RpcReply",
    "parse_message",
    "success_response",
    "error_response",
    "exception_response",
    "message_id",
    "decode_body",
]

JSONRPC_VERSION = "2.0"

RequestId = Union[StrictBool, int, float, StrictStr, None]


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request message."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    method: StrictStr
    id: RequestId = None
    params: Optional[Dict[str, Any]] = None


@dataclass
class RpcReply:
    """A JSON-RPC response plus the session id to surface as a header, if any."""

    payload: Dict[str, Any]
    session_id: Optional[str] = None


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


def _finite_float(token: str) -> float:
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {token}")
    return value


def decode_body(body: Union[bytes, str]) -> Any:
    """
    Decode a request body as strict JSON.

    ``NaN``/``Infinity`` tokens and float literals that overflow to infinity
    are rejected, so every value reaching a handler can be encoded back.

    Raises:
        ValueError: the body is not valid JSON
    """
    return json.loads(body, parse_constant=_reject_constant, parse_float=_finite_float)


def message_id(raw: Any) -> Any:
    """Best-effort correlation id of a raw, possibly invalid, message."""
    if isinstance(raw, dict):
        return raw.get("id")
    return None


def parse_message(raw: Any) -> JsonRpcRequest:
    """
    Validate one decoded JSON-RPC message.

    Raises:
        ProtocolError: the message is not a valid JSON-RPC 2.0 request
    """
    if not isinstance(raw, dict):
        raise ProtocolError(details={"reason": "message must be a JSON object"})
    try:
        return JsonRpcRequest.model_validate(raw)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field_name = ".".join(str(part) for part in first.get("loc", ()))
        raise ProtocolError(details={"field": field_name, "reason": first.get("msg", "invalid")}) from exc


def success_response(request_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    error = ErrorData(code=code, message=message, data=data).model_dump(exclude_none=True)
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def exception_response(request_id: Any, exc: Exception) -> Dict[str, Any]:
    """Convert an exception raised while dispatching one message into a JSON-RPC error."""
    if isinstance(exc, CalcufyError):
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": exc.to_jsonrpc()}
    return error_response(request_id, INTERNAL_ERROR, str(exc) or "Internal error")

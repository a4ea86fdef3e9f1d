"""
Helpers shared by the MCP transport tests.
"""
from typing import Any, Dict, List, Optional


def rpc(method: str, params: Optional[Dict[str, Any]] = None, request_id: Any = 1) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 request."""
    message: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def parse_sse(text: str) -> List[Dict[str, Any]]:
    """Split an SSE body into frames of {"id", "event", "data", "comment"}."""
    frames = []
    for chunk in text.split("\n\n"):
        if not chunk.strip():
            continue
        frame: Dict[str, Any] = {}
        for line in chunk.split("\n"):
            if line.startswith(":"):
                frame["comment"] = line[1:].strip()
                continue
            key, _, value = line.partition(": ")
            frame[key] = value
        frames.append(frame)
    return frames

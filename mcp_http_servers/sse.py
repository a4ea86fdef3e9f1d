"""
Server-Sent Events framing.
"""
import itertools
import json
from typing import Any, Optional

KEEPALIVE_FRAME = ": ping\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse_event(event: str, data: Any, event_id: Optional[str] = None) -> str:
    """Render one SSE frame. ``data`` is JSON-encoded onto a single line."""
    lines = []
    if event_id is not None:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(data, ensure_ascii=False, allow_nan=False)}")
    return "\n".join(lines) + "\n\n"


class EventIdGenerator:
    """Process-wide, strictly increasing SSE event ids."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def next_id(self) -> str:
        return str(next(self._counter))

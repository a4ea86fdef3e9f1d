"""
MCP Streamable HTTP Transport

Implements the stateful MCP endpoint:

- GET  /mcp -> long-lived SSE stream (session announcement + keep-alives)
- POST /mcp -> JSON-RPC 2.0 message or batch, answered as one JSON body or
  as an SSE stream of ``message`` events closed by a ``done`` event

Per-message failures become JSON-RPC error objects; only an unparsable body
fails the whole request.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse, StreamingResponse
from mcp.types import LATEST_PROTOCOL_VERSION

from error_handling import (
    CalcufyError,
    MethodNotFoundError,
    ParseError,
    ProtocolError,
    ValidationError,
    log_error,
    trace_function,
)
from mcp_servers.registry import ToolRegistry
from mcp_http_servers.jsonrpc import (
    RpcReply,
    decode_body,
    exception_response,
    message_id,
    parse_message,
    success_response,
)
from mcp_http_servers.sessions import SessionStore
from mcp_http_servers.sse import KEEPALIVE_FRAME, SSE_HEADERS, EventIdGenerator, format_sse_event

logger = logging.getLogger("mcp_http_servers.transport")

SESSION_HEADER = "Mcp-Session-Id"
LAST_EVENT_ID_HEADER = "Last-Event-ID"
EVENT_STREAM = "text/event-stream"

DEFAULT_PROTOCOL_VERSION = "2025-03-26"
SUPPORTED_PROTOCOL_VERSIONS = tuple(
    dict.fromkeys(("2024-11-05", "2025-03-26", "2025-06-18", LATEST_PROTOCOL_VERSION))
)
DEFAULT_KEEPALIVE_SECONDS = 30.0


@dataclass
class DispatchContext:
    """Per-message dispatch state."""

    session_id: Optional[str] = None
    issued_session_id: Optional[str] = None


MethodHandler = Callable[[Dict[str, Any], DispatchContext], Awaitable[Dict[str, Any]]]


def accepts_event_stream(request: Request) -> bool:
    return EVENT_STREAM in request.headers.get("accept", "").lower()


class MCPTransport:
    """
    Stateful MCP transport over HTTP.

    The transport owns no tools and no sessions of its own: both the
    registry and the session store are injected so that one long-lived
    instance of each can be shared by every request.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        sessions: SessionStore,
        server_name: str = "Calcufy",
        server_version: str = "1.0.0",
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
        keepalive_interval: float = DEFAULT_KEEPALIVE_SECONDS,
        event_ids: Optional[EventIdGenerator] = None,
    ):
        self.registry = registry
        self.sessions = sessions
        self.server_name = server_name
        self.server_version = server_version
        self.protocol_version = protocol_version
        self.keepalive_interval = keepalive_interval
        self.event_ids = event_ids or EventIdGenerator()

        self._methods: Dict[str, MethodHandler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "resources/list": self._list_resources,
            "tools/call": self._call_tool,
        }

    # ==================== Method Handlers ====================

    async def _initialize(self, params: Dict[str, Any], context: DispatchContext) -> Dict[str, Any]:
        session_id = context.session_id or self.sessions.create().session_id
        self.sessions.mark_initialized(session_id)
        context.issued_session_id = session_id

        requested_version = params.get("protocolVersion")
        negotiated_version = (
            requested_version
            if requested_version in SUPPORTED_PROTOCOL_VERSIONS
            else self.protocol_version
        )
        client_info = params.get("clientInfo") or {}
        logger.info(
            f"MCP initialize from client {client_info.get('name', 'unknown')}: "
            f"session={session_id}, protocolVersion={negotiated_version}"
        )

        return {
            "protocolVersion": negotiated_version,
            "capabilities": {"tools": {}, "resources": {}},
            "serverInfo": {"name": self.server_name, "version": self.server_version},
        }

    async def _ping(self, params: Dict[str, Any], context: DispatchContext) -> Dict[str, Any]:
        return {}

    async def _list_tools(self, params: Dict[str, Any], context: DispatchContext) -> Dict[str, Any]:
        tools = self.registry.list_tools()
        logger.info(f"MCP: tools/list returning {len(tools)} tools")
        return {"tools": tools}

    async def _list_resources(self, params: Dict[str, Any], context: DispatchContext) -> Dict[str, Any]:
        return {"resources": self.registry.list_resources()}

    async def _call_tool(self, params: Dict[str, Any], context: DispatchContext) -> Dict[str, Any]:
        tool_name = params.get("name")
        if not isinstance(tool_name, str) or not tool_name:
            raise ValidationError(
                "tools/call requires a tool name",
                details={"field": "name", "reason": "missing or not a string"},
            )
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}

        logger.info(f"MCP: tools/call - name={tool_name}")
        result = await self.registry.call_tool(tool_name, arguments)
        return result.to_dict()

    # ==================== Dispatch ====================

    async def dispatch(self, raw: Any, session_id: Optional[str] = None) -> RpcReply:
        """Handle one decoded JSON-RPC message. Never raises."""
        request_id = message_id(raw)

        try:
            message = parse_message(raw)
        except ProtocolError as exc:
            log_error(exc, logger, level=logging.WARNING)
            return RpcReply(exception_response(request_id, exc))

        handler = self._methods.get(message.method)
        if handler is None:
            logger.warning(f"MCP: method not found - {message.method}")
            return RpcReply(exception_response(request_id, MethodNotFoundError(message.method)))

        context = DispatchContext(session_id=session_id)
        try:
            result = await handler(message.params or {}, context)
        except Exception as exc:
            level = logging.WARNING if isinstance(exc, CalcufyError) and exc.status_code < 500 else logging.ERROR
            log_error(exc, logger, level=level, extra={"method": message.method})
            return RpcReply(exception_response(request_id, exc))

        return RpcReply(success_response(request_id, result), session_id=context.issued_session_id)

    async def process_messages(self, messages: Sequence[Any], session_id: Optional[str] = None) -> List[RpcReply]:
        """Dispatch messages one after another; replies keep the input order."""
        replies = []
        for raw in messages:
            replies.append(await self.dispatch(raw, session_id))
        return replies

    # ==================== HTTP Entry Points ====================

    @trace_function("mcp.transport.post")
    async def handle_post(self, request: Request) -> Response:
        body = await request.body()
        try:
            payload = decode_body(body)
        except ValueError as exc:
            logger.warning(f"MCP: unparsable request body: {exc}")
            return JSONResponse(
                exception_response(None, ParseError()),
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        session_id = request.headers.get(SESSION_HEADER)
        if session_id:
            self.sessions.touch(session_id)

        is_batch = isinstance(payload, list)
        messages = payload if is_batch else [payload]
        replies = await self.process_messages(messages, session_id)

        headers = {}
        issued = [reply.session_id for reply in replies if reply.session_id]
        if issued:
            headers[SESSION_HEADER] = issued[-1]

        payloads = [reply.payload for reply in replies]
        if accepts_event_stream(request) and payloads:
            return StreamingResponse(
                self.stream_replies(payloads),
                media_type=EVENT_STREAM,
                headers={**SSE_HEADERS, **headers},
            )

        return JSONResponse(payloads if is_batch else payloads[0], headers=headers)

    async def stream_replies(self, payloads: Sequence[Dict[str, Any]]) -> AsyncIterator[str]:
        for payload in payloads:
            yield format_sse_event("message", payload, event_id=self.event_ids.next_id())
        yield format_sse_event("done", {})

    async def handle_get(self, request: Request) -> StreamingResponse:
        session_id = request.headers.get(SESSION_HEADER)
        last_event_id = request.headers.get(LAST_EVENT_ID_HEADER)

        if session_id:
            if self.sessions.touch(session_id) is None:
                self.sessions.create(session_id)
            announce = False
            # TODO: replay events after Last-Event-ID once replies are buffered per session
            logger.info(f"MCP: resuming stream for session {session_id} (last-event-id={last_event_id})")
        else:
            session_id = self.sessions.create().session_id
            announce = True

        return StreamingResponse(
            self.stream_session(request, session_id, announce),
            media_type=EVENT_STREAM,
            headers={**SSE_HEADERS, SESSION_HEADER: session_id},
        )

    async def stream_session(self, request: Request, session_id: str, announce: bool) -> AsyncIterator[str]:
        """Announce the session (for new streams), then emit keep-alives until the client goes away."""
        logger.info(f"MCP: SSE stream opened for session {session_id}")
        try:
            if announce:
                yield format_sse_event("session", {"sessionId": session_id})
            while True:
                await asyncio.sleep(self.keepalive_interval)
                if await request.is_disconnected():
                    break
                self.sessions.touch(session_id)
                yield KEEPALIVE_FRAME
        finally:
            logger.info(f"MCP: SSE stream closed for session {session_id}")

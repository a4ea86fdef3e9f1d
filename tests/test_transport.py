"""
Tests for MCPTransport dispatch and the GET session stream.

The GET stream never ends on its own, so it is exercised through the
transport directly with a fake request that reports a disconnect.
"""
import json

import pytest

from mcp_http_servers.transport import DEFAULT_PROTOCOL_VERSION, SESSION_HEADER
from mcp_helpers import parse_sse, rpc


class TestDispatch:

    @pytest.mark.asyncio
    async def test_initialize_mints_session(self, transport, session_store):
        reply = await transport.dispatch(rpc("initialize", {"clientInfo": {"name": "test"}}))

        assert reply.session_id is not None
        assert session_store.get(reply.session_id).initialized is True
        assert reply.payload["result"] == {
            "protocolVersion": DEFAULT_PROTOCOL_VERSION,
            "capabilities": {"tools": {}, "resources": {}},
            "serverInfo": {"name": "Calcufy", "version": "1.0.0"},
        }

    @pytest.mark.asyncio
    async def test_initialize_reuses_header_session(self, transport, session_store):
        reply = await transport.dispatch(rpc("initialize"), session_id="existing")

        assert reply.session_id == "existing"
        assert session_store.get("existing").initialized is True

    @pytest.mark.asyncio
    async def test_supported_protocol_version_is_echoed(self, transport):
        reply = await transport.dispatch(rpc("initialize", {"protocolVersion": "2024-11-05"}))
        assert reply.payload["result"]["protocolVersion"] == "2024-11-05"

    @pytest.mark.asyncio
    async def test_unsupported_protocol_version_falls_back(self, transport):
        reply = await transport.dispatch(rpc("initialize", {"protocolVersion": "1999-01-01"}))
        assert reply.payload["result"]["protocolVersion"] == DEFAULT_PROTOCOL_VERSION

    @pytest.mark.asyncio
    async def test_only_initialize_issues_a_session(self, transport):
        reply = await transport.dispatch(rpc("tools/list"))
        assert reply.session_id is None

    @pytest.mark.asyncio
    async def test_ping(self, transport):
        reply = await transport.dispatch(rpc("ping", request_id="p"))
        assert reply.payload == {"jsonrpc": "2.0", "id": "p", "result": {}}

    @pytest.mark.asyncio
    async def test_unknown_method(self, transport):
        reply = await transport.dispatch(rpc("foo/bar", request_id=9))

        assert reply.payload["id"] == 9
        assert reply.payload["error"]["code"] == -32601
        assert reply.payload["error"]["message"] == "Method not found"

    @pytest.mark.asyncio
    async def test_invalid_envelope(self, transport):
        reply = await transport.dispatch({"jsonrpc": "1.0", "id": 2, "method": "ping"})

        assert reply.payload["id"] == 2
        assert reply.payload["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_non_object_message(self, transport):
        reply = await transport.dispatch(42)

        assert reply.payload["id"] is None
        assert reply.payload["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_tools_call_without_name(self, transport):
        reply = await transport.dispatch(rpc("tools/call", {"arguments": {}}))

        assert reply.payload["error"]["code"] == -32603
        assert reply.payload["error"]["data"]["field"] == "name"

    @pytest.mark.asyncio
    async def test_tools_call_without_arguments(self, transport):
        reply = await transport.dispatch(rpc("tools/call", {"name": "show_calculator"}))
        assert reply.payload["result"]["isError"] is False

    @pytest.mark.asyncio
    async def test_unexpected_handler_error_becomes_internal_error(self, transport):
        async def exploding(params, context):
            raise RuntimeError("boom")

        transport._methods["ping"] = exploding
        reply = await transport.dispatch(rpc("ping", request_id=3))

        assert reply.payload == {"jsonrpc": "2.0", "id": 3, "error": {"code": -32603, "message": "boom"}}

    @pytest.mark.asyncio
    async def test_process_messages_keeps_order(self, transport):
        replies = await transport.process_messages([
            rpc("ping", request_id=1),
            {"jsonrpc": "2.0", "id": 2},
            rpc("tools/call", {"name": "calculate", "arguments": {"operation": "add", "num1": 1, "num2": 2}}, 3),
        ])

        assert [reply.payload["id"] for reply in replies] == [1, 2, 3]
        assert "error" in replies[1].payload
        assert replies[2].payload["result"]["structuredContent"]["result"] == 3


class TestStreamReplies:

    @pytest.mark.asyncio
    async def test_message_events_then_done(self, transport):
        frames = [frame async for frame in transport.stream_replies([{"id": 1}, {"id": 2}])]
        events = parse_sse("".join(frames))

        assert [event["event"] for event in events] == ["message", "message", "done"]
        assert json.loads(events[0]["data"]) == {"id": 1}
        assert int(events[0]["id"]) < int(events[1]["id"])
        assert "id" not in events[2]
        assert events[2]["data"] == "{}"

    @pytest.mark.asyncio
    async def test_event_ids_keep_increasing_across_streams(self, transport):
        first = parse_sse("".join([f async for f in transport.stream_replies([{"id": 1}])]))
        second = parse_sse("".join([f async for f in transport.stream_replies([{"id": 2}])]))
        assert int(second[0]["id"]) > int(first[0]["id"])


class TestSessionStream:

    @pytest.mark.asyncio
    async def test_new_stream_announces_session_first(self, transport, session_store, fake_request):
        request = fake_request(disconnects=[False, True])
        response = await transport.handle_get(request)

        session_id = response.headers[SESSION_HEADER]
        assert session_id in session_store
        assert response.media_type == "text/event-stream"
        assert response.headers["cache-control"] == "no-cache, no-transform"

        frames = [frame async for frame in response.body_iterator]
        assert frames == [
            f'event: session\ndata: {{"sessionId": "{session_id}"}}\n\n',
            ": ping\n\n",
        ]

    @pytest.mark.asyncio
    async def test_resumed_stream_does_not_announce(self, transport, session_store, fake_request):
        session = session_store.create()
        request = fake_request(
            headers={SESSION_HEADER: session.session_id, "Last-Event-ID": "4"},
            disconnects=[False, False, True],
        )
        response = await transport.handle_get(request)

        assert response.headers[SESSION_HEADER] == session.session_id
        frames = [frame async for frame in response.body_iterator]
        assert frames == [": ping\n\n", ": ping\n\n"]
        assert len(session_store) == 1

    @pytest.mark.asyncio
    async def test_unknown_session_id_is_adopted(self, transport, session_store, fake_request):
        response = await transport.handle_get(fake_request(headers={SESSION_HEADER: "from-client"}))

        assert "from-client" in session_store
        assert [frame async for frame in response.body_iterator] == []

    @pytest.mark.asyncio
    async def test_keepalive_touches_session(self, transport, session_store, fake_request):
        session = session_store.create()
        session.last_activity = 0.0

        frames = [
            frame async for frame in transport.stream_session(
                fake_request(disconnects=[False, True]), session.session_id, announce=False
            )
        ]

        assert frames == [": ping\n\n"]
        assert session.last_activity > 0.0

    @pytest.mark.asyncio
    async def test_stream_ends_immediately_on_disconnect(self, transport, fake_request):
        frames = [
            frame async for frame in transport.stream_session(fake_request(), "s1", announce=True)
        ]
        assert frames == ['event: session\ndata: {"sessionId": "s1"}\n\n']

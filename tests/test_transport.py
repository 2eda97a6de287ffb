"""Line-delimited JSON-RPC transport tests."""

import json
from typing import List

import pytest

from mcp_git_worktree.errors import PARSE_ERROR, REQUEST_ERROR
from mcp_git_worktree.transport import LineBuffer, MessageHandler, process_stream


class FakeStdio:
    """In-memory stand-in for the process's stdin and stdout."""

    def __init__(self, chunks: List[bytes]):
        self._chunks = list(chunks)
        self.written: List[str] = []

    async def read_chunk(self) -> bytes:
        return self._chunks.pop(0) if self._chunks else b""

    async def write_line(self, text: str) -> None:
        self.written.append(text)

    @property
    def responses(self) -> List[dict]:
        return [json.loads(line) for line in self.written]


@pytest.fixture
def handler(mock_dispatcher) -> MessageHandler:
    return MessageHandler(mock_dispatcher.config, mock_dispatcher, mock_dispatcher.registry)


class TestLineBuffer:
    def test_partial_lines_are_held_back(self):
        buffer = LineBuffer()

        assert buffer.feed(b'{"a":') == []
        assert buffer.pending == b'{"a":'
        assert buffer.feed(b' 1}\n{"b"') == ['{"a": 1}']
        assert buffer.feed(b": 2}\n") == ['{"b": 2}']
        assert buffer.pending == b""

    def test_several_lines_in_one_chunk(self):
        assert LineBuffer().feed(b"one\ntwo\nthree\n") == ["one", "two", "three"]

    def test_multibyte_character_split_across_chunks(self):
        encoded = "ünïcode\n".encode("utf-8")
        buffer = LineBuffer()

        assert buffer.feed(encoded[:1]) == []
        assert buffer.feed(encoded[1:]) == ["ünïcode"]

    def test_flush_returns_unterminated_tail(self):
        buffer = LineBuffer()
        buffer.feed(b"tail")

        assert buffer.flush() == ["tail"]
        assert buffer.pending == b""

    def test_flush_drops_blank_tail(self):
        buffer = LineBuffer()
        buffer.feed(b"  ")
        assert buffer.flush() == []


class TestMessageHandler:
    @pytest.mark.asyncio
    async def test_initialize(self, handler, messages):
        response = await handler.handle_message(messages.initialize_request(request_id=1))

        assert response["jsonrpc"] == "2.0"
        assert response["id"] == 1
        result = response["result"]
        assert result["protocolVersion"] == "2024-11-05"
        assert result["capabilities"] == {"tools": {}}
        assert result["serverInfo"] == {"name": "git-server", "version": "0.1.0"}

    @pytest.mark.asyncio
    async def test_tools_list(self, handler, messages):
        response = await handler.handle_message(messages.list_tools_request(request_id="abc"))

        assert response["id"] == "abc"
        tools = response["result"]["tools"]
        assert len(tools) == 11
        assert tools[0]["name"] == "git_status"
        assert all(set(tool) >= {"name", "description", "inputSchema"} for tool in tools)

    @pytest.mark.asyncio
    async def test_tools_call_success(self, handler, messages):
        response = await handler.handle_message(
            messages.call_tool_request("switch_branch", {"branchName": "develop"}, request_id=9)
        )

        assert response["id"] == 9
        assert response["result"] == {
            "content": [{"type": "text", "text": "Switched to branch 'develop'"}]
        }

    @pytest.mark.asyncio
    async def test_tools_call_failure_sets_is_error(self, handler, messages):
        response = await handler.handle_message(messages.call_tool_request("x", {}))

        assert "error" not in response
        assert response["result"]["isError"] is True
        assert response["result"]["content"][0]["text"] == "Unknown tool: x"

    @pytest.mark.asyncio
    async def test_tools_call_without_arguments(self, handler, messages, mock_handle):
        response = await handler.handle_message(messages.call_tool_request("list_worktrees"))

        assert "isError" not in response["result"]
        mock_handle.raw.assert_awaited_once_with("worktree", "list")

    @pytest.mark.asyncio
    async def test_tools_call_with_bad_params(self, handler):
        response = await handler.handle_message(
            {"jsonrpc": "2.0", "id": 4, "method": "tools/call", "params": "nope"}
        )

        assert response["id"] == 4
        assert response["error"]["code"] == REQUEST_ERROR

    @pytest.mark.asyncio
    async def test_tools_call_without_name(self, handler, mock_handle):
        response = await handler.handle_message(
            {"jsonrpc": "2.0", "id": 6, "method": "tools/call", "params": {"arguments": {}}}
        )

        assert response == {
            "jsonrpc": "2.0",
            "id": 6,
            "error": {"code": REQUEST_ERROR, "message": "Invalid params: missing tool name"},
        }
        mock_handle.status.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_method_echoes_id(self, handler):
        response = await handler.handle_message({"jsonrpc": "2.0", "id": 7, "method": "foo"})

        assert response == {
            "jsonrpc": "2.0",
            "id": 7,
            "error": {"code": -32000, "message": "Unknown method: foo"},
        }

    @pytest.mark.asyncio
    async def test_null_id_is_echoed(self, handler):
        response = await handler.handle_message({"jsonrpc": "2.0", "id": None, "method": "foo"})

        assert "id" in response
        assert response["id"] is None

    @pytest.mark.asyncio
    async def test_notifications_get_no_response(self, handler):
        response = await handler.handle_message(
            {"jsonrpc": "2.0", "method": "notifications/initialized"}
        )
        assert response is None

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_request_error(self, handler, monkeypatch):
        def broken():
            raise RuntimeError("registry exploded")

        monkeypatch.setattr(handler.registry, "as_wire", broken)

        response = await handler.handle_message({"jsonrpc": "2.0", "id": 5, "method": "tools/list"})

        assert response["error"] == {"code": REQUEST_ERROR, "message": "registry exploded"}


class TestHandleLine:
    @pytest.mark.asyncio
    async def test_unparseable_line(self, handler):
        response = await handler.handle_line("{not json")

        assert response == {
            "jsonrpc": "2.0",
            "error": {"code": PARSE_ERROR, "message": "Parse error"},
        }
        assert "id" not in response

    @pytest.mark.asyncio
    async def test_non_object_line(self, handler):
        response = await handler.handle_line("[1, 2, 3]")
        assert response["error"]["code"] == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_deeply_nested_line(self, handler):
        response = await handler.handle_line("[" * 100000 + "]" * 100000)

        assert response["error"]["code"] == PARSE_ERROR
        assert "id" not in response

    @pytest.mark.asyncio
    async def test_blank_line_is_ignored(self, handler):
        assert await handler.handle_line("   ") is None


class TestProcessStream:
    @pytest.mark.asyncio
    async def test_responses_follow_request_order(self, handler, messages):
        lines = [
            json.dumps(messages.initialize_request(request_id=1)),
            json.dumps(messages.list_tools_request(request_id=2)),
            json.dumps(messages.call_tool_request("git_status", {}, request_id=3)),
        ]
        stdio = FakeStdio([("\n".join(lines) + "\n").encode("utf-8")])

        await process_stream(handler, stdio.read_chunk, stdio.write_line)

        assert [response["id"] for response in stdio.responses] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_request_split_across_chunks(self, handler, messages):
        line = (json.dumps(messages.list_tools_request(request_id=11)) + "\n").encode("utf-8")
        stdio = FakeStdio([line[:10], line[10:25], line[25:]])

        await process_stream(handler, stdio.read_chunk, stdio.write_line)

        assert len(stdio.responses) == 1
        assert stdio.responses[0]["id"] == 11

    @pytest.mark.asyncio
    async def test_garbage_does_not_stop_the_loop(self, handler, messages):
        payload = b"garbage\n" + json.dumps(messages.initialize_request(request_id=2)).encode() + b"\n"
        stdio = FakeStdio([payload])

        await process_stream(handler, stdio.read_chunk, stdio.write_line)

        first, second = stdio.responses
        assert first["error"]["code"] == PARSE_ERROR
        assert second["id"] == 2

    @pytest.mark.asyncio
    async def test_deeply_nested_line_does_not_stop_the_loop(self, handler, messages):
        nested = b"[" * 100000 + b"]" * 100000
        payload = nested + b"\n" + json.dumps(messages.list_tools_request(request_id=3)).encode() + b"\n"
        stdio = FakeStdio([payload])

        await process_stream(handler, stdio.read_chunk, stdio.write_line)

        first, second = stdio.responses
        assert first == {"jsonrpc": "2.0", "error": {"code": PARSE_ERROR, "message": "Parse error"}}
        assert second["id"] == 3

    @pytest.mark.asyncio
    async def test_unterminated_last_line_is_processed(self, handler, messages):
        stdio = FakeStdio([json.dumps(messages.list_tools_request(request_id=8)).encode()])

        await process_stream(handler, stdio.read_chunk, stdio.write_line)

        assert stdio.responses[0]["id"] == 8

    @pytest.mark.asyncio
    async def test_each_response_is_one_line(self, handler, messages):
        stdio = FakeStdio([(json.dumps(messages.list_tools_request()) + "\n").encode()])

        await process_stream(handler, stdio.read_chunk, stdio.write_line)

        assert all("\n" not in line for line in stdio.written)

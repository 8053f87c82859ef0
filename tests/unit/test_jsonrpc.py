"""Unit tests for JSON-RPC line framing."""

import json

from mcp_keeper.probe.jsonrpc import (
    LineBuffer,
    encode_message,
    extract_tool_names,
    initialize_request,
    is_response,
    parse_message,
    tools_list_request,
)


class TestLineBuffer:
    """Test incremental newline splitting."""

    def test_complete_lines(self):
        buffer = LineBuffer()
        messages = buffer.feed(b'{"jsonrpc":"2.0","id":1,"result":{}}\n{"jsonrpc":"2.0","id":2,"result":{}}\n')

        assert [m["id"] for m in messages] == [1, 2]
        assert buffer.pending == ""

    def test_partial_line_is_deferred(self):
        buffer = LineBuffer()

        assert buffer.feed(b'{"jsonrpc":"2.0",') == []
        assert buffer.pending == '{"jsonrpc":"2.0",'

        messages = buffer.feed(b'"id":1,"result":{}}\n{"json')
        assert messages == [{"jsonrpc": "2.0", "id": 1, "result": {}}]
        assert buffer.pending == '{"json'

    def test_split_inside_multibyte_character(self):
        buffer = LineBuffer()
        line = json.dumps({"jsonrpc": "2.0", "id": 1, "result": {"name": "café"}}, ensure_ascii=False).encode()
        cut = line.index("é".encode()) + 1

        assert buffer.feed(line[:cut]) == []
        [message] = buffer.feed(line[cut:] + b"\n")
        assert message["result"]["name"] == "café"

    def test_noise_is_ignored(self):
        buffer = LineBuffer()
        messages = buffer.feed(b'Server starting...\n\n[1, 2]\n{"id": 1}\n{"jsonrpc":"2.0","id":1,"result":{}}\n')

        assert messages == [{"jsonrpc": "2.0", "id": 1, "result": {}}]

    def test_flush_parses_unterminated_line(self):
        buffer = LineBuffer()
        buffer.feed(b'{"jsonrpc":"2.0","id":1,"result":{}}')

        assert buffer.flush() == [{"jsonrpc": "2.0", "id": 1, "result": {}}]
        assert buffer.flush() == []

    def test_oversized_line_is_dropped(self):
        buffer = LineBuffer(max_line_bytes=16)
        buffer.feed(b"x" * 32)

        assert buffer.pending == ""


class TestMessages:
    """Test request builders and response matching."""

    def test_initialize_request(self):
        request = initialize_request("mcp-keeper", "1.2.3")

        assert request["id"] == 1
        assert request["method"] == "initialize"
        assert request["params"]["protocolVersion"] == "2024-11-05"
        assert request["params"]["capabilities"] == {}
        assert request["params"]["clientInfo"] == {"name": "mcp-keeper", "version": "1.2.3"}

    def test_tools_list_request(self):
        assert tools_list_request()["id"] == 2
        assert tools_list_request()["method"] == "tools/list"

    def test_encode_is_one_line(self):
        encoded = encode_message(initialize_request("a", "b"))

        assert encoded.endswith(b"\n")
        assert encoded.count(b"\n") == 1
        assert parse_message(encoded) == initialize_request("a", "b")

    def test_is_response(self):
        assert is_response({"jsonrpc": "2.0", "id": 1, "result": {}}, 1)
        assert is_response({"jsonrpc": "2.0", "id": 1, "error": {"code": -1}}, 1)
        assert not is_response({"jsonrpc": "2.0", "id": 2, "result": {}}, 1)
        assert not is_response({"jsonrpc": "2.0", "id": 1, "method": "ping"}, 1)
        assert not is_response({"jsonrpc": "2.0", "id": True, "result": {}}, 1)
        assert not is_response({"jsonrpc": "2.0", "id": 1}, 1)

    def test_extract_tool_names(self):
        message = {"jsonrpc": "2.0", "id": 2, "result": {"tools": [
            {"name": "echo"}, {"name": ""}, {"description": "anonymous"}, "junk", {"name": "add"},
        ]}}

        assert extract_tool_names(message) == ["echo", "add"]
        assert extract_tool_names({"jsonrpc": "2.0", "id": 2, "error": {}}) == []

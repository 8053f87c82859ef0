"""
Line-delimited JSON-RPC framing for talking to MCP servers over stdio
"""

import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
INITIALIZE_ID = 1
TOOLS_LIST_ID = 2

# Drop the buffer if a single line grows past this without a newline
MAX_LINE_BYTES = 1024 * 1024


def parse_message(line: bytes) -> Optional[Dict[str, Any]]:
    """Parse one line as a JSON-RPC 2.0 message, or return None."""
    text = line.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        message = json.loads(text)
    except json.JSONDecodeError:
        logger.debug(f"Ignoring non-JSON line: {text[:100]}")
        return None
    if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
        logger.debug(f"Ignoring non JSON-RPC line: {text[:100]}")
        return None
    return message


class LineBuffer:
    """
    Incremental newline splitter for a process's stdout.

    ``feed`` accepts raw chunks as they arrive and returns the JSON-RPC
    messages completed by that chunk. A trailing partial line stays buffered
    until its newline shows up. Lines that are not JSON-RPC are dropped.
    """

    def __init__(self, max_line_bytes: int = MAX_LINE_BYTES):
        self.max_line_bytes = max_line_bytes
        self._buffer = b""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer.decode("utf-8", errors="replace")

    def feed(self, chunk: bytes) -> List[Dict[str, Any]]:
        self._buffer += chunk
        messages = []

        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            message = parse_message(line)
            if message is not None:
                messages.append(message)

        if len(self._buffer) > self.max_line_bytes:
            logger.warning("Line buffer too large, clearing")
            self._buffer = b""

        return messages

    def flush(self) -> List[Dict[str, Any]]:
        """Parse whatever is left once the stream has ended."""
        remaining, self._buffer = self._buffer, b""
        message = parse_message(remaining)
        return [message] if message is not None else []


def initialize_request(
    client_name: str,
    client_version: str,
    protocol_version: str = PROTOCOL_VERSION,
) -> Dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": INITIALIZE_ID,
        "method": "initialize",
        "params": {
            "protocolVersion": protocol_version,
            "capabilities": {},
            "clientInfo": {"name": client_name, "version": client_version},
        },
    }


def initialized_notification() -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "method": "notifications/initialized"}


def tools_list_request() -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": TOOLS_LIST_ID, "method": "tools/list", "params": {}}


def encode_message(message: Dict[str, Any]) -> bytes:
    """Serialize one message as a single newline-terminated line."""
    return (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")


def is_response(message: Dict[str, Any], request_id: int) -> bool:
    """True for a result or error response echoing ``request_id``."""
    if "method" in message:
        return False
    msg_id = message.get("id")
    if isinstance(msg_id, bool) or msg_id != request_id:
        return False
    return "result" in message or "error" in message


def extract_tool_names(message: Dict[str, Any]) -> List[str]:
    result = message.get("result")
    if not isinstance(result, dict):
        return []
    tools = result.get("tools")
    if not isinstance(tools, list):
        return []
    names = []
    for tool in tools:
        if isinstance(tool, dict) and isinstance(tool.get("name"), str) and tool["name"]:
            names.append(tool["name"])
    return names

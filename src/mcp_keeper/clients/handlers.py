"""Handlers for the supported AI clients."""

from mcp_keeper.clients.base import ClientHandler, MCP_SERVERS, nested
from mcp_keeper.models import ClientType


class ClaudeDesktopHandler(ClientHandler):
    type = ClientType.CLAUDE_DESKTOP
    display_name = "Claude Desktop"
    projection = MCP_SERVERS


class CursorHandler(ClientHandler):
    type = ClientType.CURSOR
    display_name = "Cursor"
    projection = MCP_SERVERS


class WindsurfHandler(ClientHandler):
    type = ClientType.WINDSURF
    display_name = "Windsurf"
    projection = MCP_SERVERS


class VSCodeHandler(ClientHandler):
    """VS Code keeps servers in settings.json under ``mcp`` → ``servers``."""
    type = ClientType.VSCODE
    display_name = "VS Code"
    projection = nested("mcp", "servers")

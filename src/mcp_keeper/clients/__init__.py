"""Config handlers for AI clients (Claude Desktop, Cursor, VS Code, Windsurf)."""

from .base import ClientHandler, Projection, top_level, nested
from .handlers import ClaudeDesktopHandler, CursorHandler, VSCodeHandler, WindsurfHandler
from .detector import HANDLERS, get_all_client_types, get_client, get_installed_clients, parse_client_type
from .paths import resolve_config_path

__all__ = [
    "HANDLERS",
    "ClientHandler",
    "Projection",
    "top_level",
    "nested",
    "ClaudeDesktopHandler",
    "CursorHandler",
    "VSCodeHandler",
    "WindsurfHandler",
    "get_all_client_types",
    "get_client",
    "get_installed_clients",
    "parse_client_type",
    "resolve_config_path"
]

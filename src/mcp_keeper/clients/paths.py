"""Platform-specific config file locations for each AI client."""

import os
import sys
from pathlib import Path

from mcp_keeper.models import ClientType


def get_app_data_dir() -> Path:
    """~/Library/Application Support (mac), %APPDATA% (win), XDG config dir (linux)."""
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support"
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA") or home / "AppData" / "Roaming")
    return Path(os.environ.get("XDG_CONFIG_HOME") or home / ".config")


def resolve_config_path(client: ClientType) -> Path:
    """Full config file path for ``client`` on the current platform."""
    app_data = get_app_data_dir()

    if client == ClientType.CLAUDE_DESKTOP:
        return app_data / "Claude" / "claude_desktop_config.json"
    if client == ClientType.CURSOR:
        return app_data / "Cursor" / "User" / "globalStorage" / "cursor.mcp" / "mcp.json"
    if client == ClientType.WINDSURF:
        return app_data / "Windsurf" / "User" / "globalStorage" / "windsurf.mcpConfigJson" / "mcp.json"
    if client == ClientType.VSCODE:
        # Global user settings.json, not a workspace .vscode/mcp.json
        if sys.platform in ("darwin", "win32"):
            return app_data / "Code" / "User" / "settings.json"
        return Path.home() / ".config" / "Code" / "User" / "settings.json"

    raise ValueError(f"Unsupported client: {client}")

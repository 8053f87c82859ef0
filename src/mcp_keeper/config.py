"""Configuration for mcp-keeper."""

import os
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field

from mcp_keeper import __version__


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


class ProbeConfig(BaseModel):
    """Settings for spawning servers and running the MCP handshake."""

    deep_timeout: float = Field(default_factory=lambda: _env_float("MCP_KEEPER_DEEP_TIMEOUT", 10.0))
    quick_timeout: float = Field(default_factory=lambda: _env_float("MCP_KEEPER_QUICK_TIMEOUT", 3.0))
    concurrency: int = Field(default_factory=lambda: _env_int("MCP_KEEPER_CONCURRENCY", 5))

    # Sent as clientInfo in the initialize request
    client_name: str = "mcp-keeper"
    client_version: str = __version__
    protocol_version: str = "2024-11-05"


class ClientDiscoveryConfig(BaseModel):
    """Which AI clients are considered during sync."""

    preferred_clients: List[str] = Field(default_factory=lambda: [
        "claude-desktop", "cursor", "vscode", "windsurf"
    ])


class KeeperConfig(BaseModel):
    """Top-level mcp-keeper configuration."""

    home: Path = Field(default_factory=lambda: Path(
        os.getenv("MCP_KEEPER_HOME") or Path.home() / ".mcp-keeper"
    ).expanduser())

    # Explicit lockfile path; when unset the lockfile is searched for upwards
    # from the working directory, falling back to the global one in `home`.
    lockfile: str = Field(default_factory=lambda: os.getenv("MCP_KEEPER_LOCKFILE", ""))
    lockfile_name: str = "mcp-keeper.lock"

    max_snapshots: int = Field(default_factory=lambda: _env_int("MCP_KEEPER_MAX_SNAPSHOTS", 5))
    update_check_ttl_hours: float = 24.0

    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    discovery: ClientDiscoveryConfig = Field(default_factory=ClientDiscoveryConfig)

    @property
    def rollback_dir(self) -> Path:
        return self.home / "rollback"

    @property
    def global_lockfile(self) -> Path:
        return self.home / self.lockfile_name

    @property
    def update_cache_file(self) -> Path:
        return self.home / ".update-check"


config = KeeperConfig()

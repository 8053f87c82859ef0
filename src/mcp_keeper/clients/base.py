"""Client config handlers.

Each AI client keeps its MCP servers somewhere inside its own JSON file.
A handler reads that file, projects the server map out of it, and merges a
modified map back in without disturbing the keys it does not own.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from mcp_keeper.clients.paths import resolve_config_path
from mcp_keeper.errors import ConfigParseError, ConfigWriteError
from mcp_keeper.models import ClientConfig, ClientType, ServerEntry
from mcp_keeper.storage import write_atomic

logger = logging.getLogger(__name__)

RawConfig = Dict[str, Any]


@dataclass(frozen=True)
class Projection:
    """Pure mapping between a client's raw JSON and its server map.

    ``to_uniform(raw)`` returns the server map found in ``raw``.
    ``from_uniform(raw, servers)`` returns a new raw document with
    ``servers`` merged in.
    """
    to_uniform: Callable[[RawConfig], Dict[str, Any]]
    from_uniform: Callable[[RawConfig, Dict[str, Any]], RawConfig]


def top_level(key: str) -> Projection:
    """Servers stored directly under ``key`` at the top of the document."""

    def to_uniform(raw: RawConfig) -> Dict[str, Any]:
        return raw.get(key) or {}

    def from_uniform(raw: RawConfig, servers: Dict[str, Any]) -> RawConfig:
        return {**raw, key: servers}

    return Projection(to_uniform, from_uniform)


def nested(outer: str, inner: str) -> Projection:
    """Servers stored under ``raw[outer][inner]``; other keys of ``outer`` are kept."""

    def to_uniform(raw: RawConfig) -> Dict[str, Any]:
        section = raw.get(outer) or {}
        if not isinstance(section, dict):
            return {}
        return section.get(inner) or {}

    def from_uniform(raw: RawConfig, servers: Dict[str, Any]) -> RawConfig:
        section = raw.get(outer)
        if not isinstance(section, dict):
            section = {}
        return {**raw, outer: {**section, inner: servers}}

    return Projection(to_uniform, from_uniform)


MCP_SERVERS = top_level("mcpServers")


class ClientHandler:
    """Reads and writes the MCP section of one client's config file."""

    type: ClientType
    display_name: str
    projection: Projection = MCP_SERVERS
    file_mode: int = 0o600

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = Path(config_path) if config_path else None

    def get_config_path(self) -> Path:
        return self._config_path or resolve_config_path(self.type)

    def is_installed(self) -> bool:
        """Heuristic: the client's config directory exists."""
        return self.get_config_path().parent.is_dir()

    def _read_raw(self) -> RawConfig:
        """Read raw JSON, returning an empty object if the file is missing."""
        path = self.get_config_path()
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigParseError(path, e) from e

        if not text.strip():
            return {}

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigParseError(path, e) from e

        if not isinstance(raw, dict):
            raise ConfigParseError(path, "top-level value is not a JSON object")
        return raw

    def _write_raw(self, raw: RawConfig) -> None:
        path = self.get_config_path()
        try:
            write_atomic(path, json.dumps(raw, indent=2), mode=self.file_mode)
        except OSError as e:
            raise ConfigWriteError(path, e) from e

    def _to_client_config(self, raw: RawConfig) -> ClientConfig:
        path = self.get_config_path()
        servers = self.projection.to_uniform(raw)
        if not isinstance(servers, dict):
            raise ConfigParseError(path, "server section is not a JSON object")

        parsed = {}
        for name, entry in servers.items():
            if not isinstance(entry, dict):
                raise ConfigParseError(path, f"server '{name}' is not a JSON object")
            try:
                parsed[name] = ServerEntry.model_validate(entry)
            except ValidationError as e:
                raise ConfigParseError(path, e) from e
        return ClientConfig(servers=parsed)

    def read_config(self) -> ClientConfig:
        return self._to_client_config(self._read_raw())

    def write_config(self, client_config: ClientConfig) -> None:
        raw = self._read_raw()
        servers = {name: entry.to_dict() for name, entry in client_config.servers.items()}
        self._write_raw(self.projection.from_uniform(raw, servers))
        logger.debug(f"Wrote {len(servers)} server(s) to {self.display_name} config")

    def add_server(self, name: str, entry: ServerEntry) -> None:
        client_config = self.read_config()
        client_config.servers[name] = entry
        self.write_config(client_config)

    def remove_server(self, name: str) -> bool:
        """Remove ``name``. Returns False without writing if it is absent."""
        client_config = self.read_config()
        if name not in client_config.servers:
            return False
        del client_config.servers[name]
        self.write_config(client_config)
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.get_config_path()})"

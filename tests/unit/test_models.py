"""Unit tests for data models, configuration and errors."""

import pytest
from pathlib import Path
from pydantic import ValidationError

from mcp_keeper.config import KeeperConfig, ProbeConfig
from mcp_keeper.errors import ConfigParseError, KeeperError, LockfileWriteError, SnapshotNotFoundError, UnknownClientError
from mcp_keeper.models import ClientType, LockEntry, LockState, ServerEntry


class TestModels:
    """Test model parsing and serialization."""

    def test_server_entry_keeps_extra_keys(self):
        entry = ServerEntry.model_validate({"command": "npx", "disabled": True, "type": "stdio"})

        assert entry.to_dict() == {"command": "npx", "disabled": True, "type": "stdio"}

    def test_server_entry_drops_unset_fields(self):
        assert ServerEntry(command="npx").to_dict() == {"command": "npx"}

    def test_lock_entry_aliases(self, make_lock_entry):
        data = make_lock_entry(env_vars=["A"]).model_dump(by_alias=True, mode="json")

        assert data["envVars"] == ["A"]
        assert data["installedAt"] == "2025-01-01T00:00:00Z"
        assert LockEntry.model_validate(data) == make_lock_entry(env_vars=["A"])

    def test_lock_entry_clients_are_deduplicated(self, make_lock_entry):
        entry = make_lock_entry(clients=[ClientType.CURSOR, ClientType.VSCODE, ClientType.CURSOR])

        assert entry.clients == [ClientType.CURSOR, ClientType.VSCODE]

        data = entry.model_dump(by_alias=True, mode="json")
        data["clients"] = ["cursor", "cursor"]
        assert LockEntry.model_validate(data).clients == [ClientType.CURSOR]

    def test_server_entry_numeric_values_become_strings(self):
        entry = ServerEntry.model_validate({"command": "node", "args": ["--port", 8080], "env": {"PORT": 3000}})

        assert entry.args == ["--port", "8080"]
        assert entry.env == {"PORT": "3000"}

    def test_lock_state_version(self):
        assert LockState.model_validate({"lockfileVersion": 1}).lockfile_version == 1
        with pytest.raises(ValidationError):
            LockState.model_validate({"lockfileVersion": 2})

    def test_client_type_values(self):
        assert [c.value for c in ClientType] == ["claude-desktop", "cursor", "vscode", "windsurf"]


class TestConfig:
    """Test defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in ("MCP_KEEPER_HOME", "MCP_KEEPER_LOCKFILE", "MCP_KEEPER_DEEP_TIMEOUT", "MCP_KEEPER_MAX_SNAPSHOTS"):
            monkeypatch.delenv(name, raising=False)

        config = KeeperConfig()

        assert config.home == Path.home() / ".mcp-keeper"
        assert config.lockfile == ""
        assert config.max_snapshots == 5
        assert config.update_check_ttl_hours == 24
        assert config.probe.deep_timeout == 10
        assert config.probe.quick_timeout == 3
        assert config.probe.concurrency == 5
        assert config.rollback_dir == config.home / "rollback"
        assert config.global_lockfile == config.home / "mcp-keeper.lock"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MCP_KEEPER_HOME", str(tmp_path / "data"))
        monkeypatch.setenv("MCP_KEEPER_DEEP_TIMEOUT", "2.5")
        monkeypatch.setenv("MCP_KEEPER_MAX_SNAPSHOTS", "3")

        config = KeeperConfig()

        assert config.home == tmp_path / "data"
        assert config.probe.deep_timeout == 2.5
        assert config.max_snapshots == 3

    def test_probe_client_identity(self):
        probe = ProbeConfig()

        assert probe.client_name == "mcp-keeper"
        assert probe.protocol_version == "2024-11-05"


class TestErrors:
    """Test error kinds and context."""

    def test_path_and_cause(self):
        error = ConfigParseError("/tmp/x.json", "Expecting value")

        assert isinstance(error, KeeperError)
        assert error.kind == "config_parse"
        assert error.path == "/tmp/x.json"
        assert "/tmp/x.json" in str(error)
        assert "Expecting value" in str(error)

    def test_kinds_are_distinct(self):
        kinds = {
            ConfigParseError("p", "c").kind,
            LockfileWriteError("p", "c").kind,
            SnapshotNotFoundError(3).kind,
            UnknownClientError("notepad").kind,
        }
        assert len(kinds) == 4

    def test_unknown_client_message(self):
        assert "notepad" in str(UnknownClientError("notepad"))

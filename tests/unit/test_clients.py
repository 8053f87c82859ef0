"""Unit tests for client config handlers."""

import json
import stat
import sys

import pytest

from mcp_keeper.clients import (
    ClaudeDesktopHandler,
    CursorHandler,
    VSCodeHandler,
    WindsurfHandler,
    get_all_client_types,
    get_client,
    get_installed_clients,
    nested,
    parse_client_type,
    resolve_config_path,
    top_level,
)
from mcp_keeper.errors import ConfigParseError, UnknownClientError
from mcp_keeper.models import ClientConfig, ClientType, ServerEntry


class TestProjections:
    """Test pure server-map projections."""

    def test_top_level_round_trip(self):
        projection = top_level("mcpServers")
        raw = {"theme": "dark", "mcpServers": {"a": {"command": "x"}}}

        servers = projection.to_uniform(raw)
        assert servers == {"a": {"command": "x"}}

        updated = projection.from_uniform(raw, {"b": {"command": "y"}})
        assert updated == {"theme": "dark", "mcpServers": {"b": {"command": "y"}}}
        # Input is not mutated
        assert raw["mcpServers"] == {"a": {"command": "x"}}

    def test_nested_keeps_sibling_keys(self):
        projection = nested("mcp", "servers")
        raw = {"editor.fontSize": 14, "mcp": {"inputs": [1], "servers": {}}}

        updated = projection.from_uniform(raw, {"a": {"command": "x"}})

        assert updated["editor.fontSize"] == 14
        assert updated["mcp"]["inputs"] == [1]
        assert projection.to_uniform(updated) == {"a": {"command": "x"}}

    def test_nested_missing_section(self):
        projection = nested("mcp", "servers")
        assert projection.to_uniform({}) == {}
        assert projection.from_uniform({}, {}) == {"mcp": {"servers": {}}}


class TestClientHandler:
    """Test reading and writing client config files."""

    @pytest.fixture
    def claude(self, tmp_path):
        return ClaudeDesktopHandler(tmp_path / "claude" / "claude_desktop_config.json")

    @pytest.fixture
    def vscode(self, tmp_path):
        return VSCodeHandler(tmp_path / "Code" / "User" / "settings.json")

    def test_missing_file_is_empty(self, claude):
        assert claude.read_config() == ClientConfig()

    def test_empty_file_is_empty(self, claude):
        path = claude.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("  \n")

        assert claude.read_config().servers == {}

    def test_reads_servers(self, claude, write_json):
        write_json(claude.get_config_path(), {
            "mcpServers": {
                "fs": {"command": "npx", "args": ["-y", "fs"], "env": {"ROOT": "/tmp"}},
            }
        })

        config = claude.read_config()

        assert config.servers["fs"].command == "npx"
        assert config.servers["fs"].args == ["-y", "fs"]
        assert config.servers["fs"].env == {"ROOT": "/tmp"}

    def test_malformed_json_raises(self, claude):
        path = claude.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("{broken")

        with pytest.raises(ConfigParseError) as exc_info:
            claude.read_config()
        assert exc_info.value.path == str(path)

    def test_invalid_utf8_raises(self, claude):
        path = claude.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_bytes(b'{"mcpServers":{"x":{"command":"\xff\xfe"}}}')

        with pytest.raises(ConfigParseError) as exc_info:
            claude.read_config()
        assert exc_info.value.path == str(path)

    def test_numeric_args_and_env_survive_add(self, claude, write_json):
        write_json(claude.get_config_path(), {"mcpServers": {
            "db": {"command": "node", "args": ["server.js", "--port", 8080], "env": {"PORT": 3000}},
        }})

        claude.add_server("fs", ServerEntry(command="npx"))

        servers = json.loads(claude.get_config_path().read_text())["mcpServers"]
        assert servers["db"] == {"command": "node", "args": ["server.js", "--port", "8080"], "env": {"PORT": "3000"}}
        assert servers["fs"] == {"command": "npx"}

    def test_non_object_root_raises(self, claude, write_json):
        write_json(claude.get_config_path(), ["not", "an", "object"])

        with pytest.raises(ConfigParseError):
            claude.read_config()

    def test_non_object_entry_raises(self, claude, write_json):
        write_json(claude.get_config_path(), {"mcpServers": {"bad": "npx"}})

        with pytest.raises(ConfigParseError):
            claude.read_config()

    def test_add_server_preserves_unrelated_keys(self, claude, write_json):
        write_json(claude.get_config_path(), {"globalShortcut": "Ctrl+Space", "mcpServers": {}})

        claude.add_server("fs", ServerEntry(command="npx", args=["fs"]))

        raw = json.loads(claude.get_config_path().read_text())
        assert raw["globalShortcut"] == "Ctrl+Space"
        assert raw["mcpServers"] == {"fs": {"command": "npx", "args": ["fs"]}}

    def test_unknown_entry_keys_survive_round_trip(self, claude, write_json):
        write_json(claude.get_config_path(), {
            "mcpServers": {"remote": {"type": "sse", "url": "http://localhost:9000", "disabled": True}}
        })

        claude.add_server("fs", ServerEntry(command="npx"))

        raw = json.loads(claude.get_config_path().read_text())
        assert raw["mcpServers"]["remote"] == {"type": "sse", "url": "http://localhost:9000", "disabled": True}

    def test_remove_server(self, claude, write_json):
        write_json(claude.get_config_path(), {"mcpServers": {"a": {"command": "x"}, "b": {"command": "y"}}})

        assert claude.remove_server("a")
        assert list(claude.read_config().servers) == ["b"]

    def test_remove_absent_server_does_not_write(self, claude, write_json):
        path = write_json(claude.get_config_path(), {"mcpServers": {"a": {"command": "x"}}})
        before = path.read_text()

        assert not claude.remove_server("zzz")
        assert path.read_text() == before

    def test_vscode_nested_layout(self, vscode, write_json):
        write_json(vscode.get_config_path(), {"workbench.colorTheme": "Monokai"})

        vscode.add_server("fs", ServerEntry(command="npx"))

        raw = json.loads(vscode.get_config_path().read_text())
        assert raw["workbench.colorTheme"] == "Monokai"
        assert raw["mcp"] == {"servers": {"fs": {"command": "npx"}}}
        assert list(vscode.read_config().servers) == ["fs"]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_written_file_is_private(self, claude):
        claude.add_server("fs", ServerEntry(command="npx"))

        assert stat.S_IMODE(claude.get_config_path().stat().st_mode) == 0o600

    def test_is_installed(self, claude):
        assert not claude.is_installed()
        claude.get_config_path().parent.mkdir(parents=True)
        assert claude.is_installed()


class TestDetector:
    """Test client lookup and detection."""

    def test_all_client_types(self):
        assert set(get_all_client_types()) == set(ClientType)

    def test_parse_client_type(self):
        assert parse_client_type("cursor") == ClientType.CURSOR
        with pytest.raises(UnknownClientError):
            parse_client_type("notepad")

    def test_get_client(self):
        assert isinstance(get_client("claude-desktop"), ClaudeDesktopHandler)
        assert isinstance(get_client(ClientType.CURSOR), CursorHandler)
        assert isinstance(get_client("windsurf"), WindsurfHandler)
        assert isinstance(get_client("vscode"), VSCodeHandler)

    @pytest.mark.skipif(sys.platform != "linux", reason="XDG layout")
    def test_linux_paths(self, isolated_home, tmp_path):
        config_home = tmp_path / "home" / ".config"

        assert resolve_config_path(ClientType.CLAUDE_DESKTOP) == config_home / "Claude" / "claude_desktop_config.json"
        assert resolve_config_path(ClientType.VSCODE) == tmp_path / "home" / ".config" / "Code" / "User" / "settings.json"

    @pytest.mark.skipif(sys.platform != "linux", reason="XDG layout")
    def test_installed_clients(self, tmp_path):
        (tmp_path / "home" / ".config" / "Claude").mkdir(parents=True)

        installed = get_installed_clients()

        assert [h.type for h in installed] == [ClientType.CLAUDE_DESKTOP]

    @pytest.mark.skipif(sys.platform != "linux", reason="XDG layout")
    def test_installed_clients_respects_preference(self, tmp_path):
        (tmp_path / "home" / ".config" / "Claude").mkdir(parents=True)

        assert get_installed_clients(preferred=["cursor"]) == []

"""Pytest configuration and shared fixtures."""

import json
import sys
import pytest
from pathlib import Path

# Add the src directory to Python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from mcp_keeper.config import config
from mcp_keeper.models import ClientType, LockEntry, RuntimeKind, SourceKind


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the data dir, lockfile and client config dirs into tmp_path."""
    user_home = tmp_path / "home"
    monkeypatch.setenv("HOME", str(user_home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(user_home / ".config"))
    monkeypatch.setenv("APPDATA", str(user_home / "AppData"))

    keeper_home = tmp_path / "keeper"
    monkeypatch.setattr(config, "home", keeper_home)
    monkeypatch.setattr(config, "lockfile", str(keeper_home / config.lockfile_name))
    return keeper_home


@pytest.fixture
def make_lock_entry():
    """Factory for lock entries with sensible defaults."""
    def factory(**overrides):
        data = {
            "version": "1.0.0",
            "source": SourceKind.NPM,
            "resolved": "https://registry.npmjs.org/pkg/-/pkg-1.0.0.tgz",
            "integrity": "sha512-abc",
            "runtime": RuntimeKind.NODE,
            "command": "npx",
            "args": ["-y", "pkg"],
            "env_vars": [],
            "installed_at": "2025-01-01T00:00:00Z",
            "clients": [ClientType.CLAUDE_DESKTOP],
        }
        data.update(overrides)
        return LockEntry(**data)
    return factory


@pytest.fixture
def write_json():
    """Write a JSON document, creating parent directories."""
    def writer(path: Path, data) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2))
        return path
    return writer

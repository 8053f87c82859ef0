"""Unit tests for the resolver interface."""

import asyncio
from datetime import datetime, timezone

import pytest

from mcp_keeper.crypto import verify_integrity
from mcp_keeper.models import ClientType, RuntimeKind, SourceKind
from mcp_keeper.resolvers import (
    EnvVarSpec,
    ResolvedServer,
    ResolverRegistry,
    ServerResolver,
    build_lock_entry,
    parse_env_flags,
)


class OllamaResolver(ServerResolver):
    name = "ollama"
    prefix = "ollama:"

    async def resolve(self, spec):
        return ResolvedServer(
            name=spec,
            version="0.3.0",
            runtime=RuntimeKind.PYTHON,
            command="uvx",
            args=[f"ollama-mcp-{spec}"],
            env_vars=[EnvVarSpec(name="OLLAMA_HOST", required=True)],
            resolved=f"https://example.com/ollama/{spec}-0.3.0.tar.gz",
        )


class OllamaLocalResolver(OllamaResolver):
    name = "ollama-local"
    prefix = "ollama:local/"


class TestResolverRegistry:
    """Test registration and prefix lookup."""

    @pytest.fixture
    def registry(self):
        return ResolverRegistry([OllamaResolver()])

    def test_find_by_prefix(self, registry):
        assert registry.find("ollama:llama3").name == "ollama"
        assert registry.find("@scope/pkg") is None

    def test_longest_prefix_wins(self, registry):
        registry.register(OllamaLocalResolver())

        assert registry.find("ollama:local/x").name == "ollama-local"
        assert registry.find("ollama:x").name == "ollama"

    def test_register_requires_prefix(self, registry):
        class Nameless(OllamaResolver):
            prefix = ""

        with pytest.raises(ValueError):
            registry.register(Nameless())

    def test_unregister(self, registry):
        assert registry.unregister("ollama")
        assert not registry.unregister("ollama")
        assert registry.list_resolvers() == []

    @pytest.mark.parametrize("spec,source,normalized", [
        ("smithery:weather", "smithery", "weather"),
        ("https://github.com/acme/server", "github", "https://github.com/acme/server"),
        ("github.com/acme/server", "github", "github.com/acme/server"),
        ("ollama:llama3", "plugin:ollama", "llama3"),
        ("@modelcontextprotocol/server-filesystem", "npm", "@modelcontextprotocol/server-filesystem"),
    ])
    def test_detect_source(self, registry, spec, source, normalized):
        match = registry.detect_source(spec)

        assert match.source == source
        assert match.spec == normalized

    def test_resolve_through_registry(self, registry):
        match = registry.detect_source("ollama:llama3")
        resolved = asyncio.run(match.resolver.resolve(match.spec))

        assert resolved.name == "llama3"
        assert resolved.command == "uvx"


class TestBuildLockEntry:
    """Test turning resolved metadata into a lock entry."""

    def test_build(self):
        resolved = asyncio.run(OllamaResolver().resolve("llama3"))
        when = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)

        name, entry = build_lock_entry(
            resolved, SourceKind.LOCAL, [ClientType.CURSOR, ClientType.CLAUDE_DESKTOP, ClientType.CURSOR], when
        )

        assert name == "llama3"
        assert entry.version == "0.3.0"
        assert entry.runtime == RuntimeKind.PYTHON
        assert entry.env_vars == ["OLLAMA_HOST"]
        assert entry.installed_at == "2025-03-01T09:30:00Z"
        assert entry.clients == [ClientType.CLAUDE_DESKTOP, ClientType.CURSOR]
        assert entry.integrity.startswith("sha512-")
        assert verify_integrity(resolved.resolved, entry.integrity)


class TestParseEnvFlags:
    """Test KEY=VALUE parsing."""

    def test_parse(self):
        assert parse_env_flags(["A=1", "B=x=y", "=skip", "novalue", "C="]) == {"A": "1", "B": "x=y", "C": ""}

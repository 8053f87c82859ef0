"""Resolver interface for turning an install spec into a lock entry.

Resolvers do the network work (registry metadata, tarball URLs) and live
outside the core. The core only knows how to pick a resolver by prefix and
how to record what a resolver returns.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from mcp_keeper.crypto import compute_integrity
from mcp_keeper.models import ClientType, LockEntry, RuntimeKind, SourceKind

logger = logging.getLogger(__name__)


class EnvVarSpec(BaseModel):
    """An environment variable a server expects."""
    name: str
    description: str = ""
    required: bool = False
    default: Optional[str] = None


class ResolvedServer(BaseModel):
    """Server metadata as returned by a resolver."""
    name: str
    version: str
    description: str = ""
    runtime: RuntimeKind
    command: str
    args: List[str] = Field(default_factory=list)
    env_vars: List[EnvVarSpec] = Field(default_factory=list)
    resolved: str


class ServerResolver(ABC):
    """Base class for resolvers that handle one kind of install spec."""

    name: str = ""
    prefix: str = ""

    def matches(self, spec: str) -> bool:
        return bool(self.prefix) and spec.startswith(self.prefix)

    def strip_prefix(self, spec: str) -> str:
        return spec[len(self.prefix):] if self.matches(spec) else spec

    @abstractmethod
    async def resolve(self, spec: str) -> ResolvedServer:
        """
        Resolve a spec (without its prefix) to launch metadata.

        Raises:
            KeeperError subclass or OSError when the spec cannot be resolved.
        """
        pass


@dataclass
class SourceMatch:
    source: str
    spec: str
    resolver: Optional[ServerResolver] = None


class ResolverRegistry:
    """Registry of resolvers, looked up by spec prefix."""

    def __init__(self, resolvers: Optional[Iterable[ServerResolver]] = None):
        self._resolvers: Dict[str, ServerResolver] = {}
        for resolver in resolvers or []:
            self.register(resolver)

    def register(self, resolver: ServerResolver):
        if not resolver.name or not resolver.prefix:
            raise ValueError("resolver needs both a name and a prefix")
        if resolver.name in self._resolvers:
            logger.warning(f"Replacing resolver {resolver.name}")
        self._resolvers[resolver.name] = resolver

    def unregister(self, name: str) -> bool:
        return self._resolvers.pop(name, None) is not None

    def get(self, name: str) -> Optional[ServerResolver]:
        return self._resolvers.get(name)

    def list_resolvers(self) -> List[ServerResolver]:
        return list(self._resolvers.values())

    def find(self, spec: str) -> Optional[ServerResolver]:
        """Resolver whose prefix matches ``spec``; the longest prefix wins."""
        candidates = [r for r in self._resolvers.values() if r.matches(spec)]
        if not candidates:
            return None
        return max(candidates, key=lambda r: len(r.prefix))

    def detect_source(self, spec: str) -> SourceMatch:
        """
        Classify an install spec.

        Built-in forms are checked first: ``smithery:<name>``, GitHub URLs,
        then registered prefixes. Anything else is an npm package name.
        """
        if spec.startswith("smithery:"):
            return SourceMatch(SourceKind.SMITHERY.value, spec[len("smithery:"):])
        if spec.startswith("https://github.com/") or spec.startswith("github.com/"):
            return SourceMatch(SourceKind.GITHUB.value, spec)

        resolver = self.find(spec)
        if resolver is not None:
            return SourceMatch(f"plugin:{resolver.name}", resolver.strip_prefix(spec), resolver)

        return SourceMatch(SourceKind.NPM.value, spec)


def parse_env_flags(flags: Iterable[str]) -> Dict[str, str]:
    """``KEY=VALUE`` pairs to a dict. Flags without a key are ignored."""
    env = {}
    for flag in flags:
        key, sep, value = flag.partition("=")
        if sep and key:
            env[key] = value
    return env


def build_lock_entry(
    resolved: ResolvedServer,
    source: SourceKind,
    clients: Iterable[ClientType],
    installed_at: Optional[datetime] = None,
) -> Tuple[str, LockEntry]:
    """
    Record a resolved server as a lock entry.

    Returns the server name together with the entry. Env var values are never
    recorded, only their names.
    """
    installed_at = installed_at or datetime.now(timezone.utc)
    entry = LockEntry(
        version=resolved.version,
        source=source,
        resolved=resolved.resolved,
        integrity=compute_integrity(resolved.resolved),
        runtime=resolved.runtime,
        command=resolved.command,
        args=list(resolved.args),
        env_vars=[v.name for v in resolved.env_vars],
        installed_at=installed_at.isoformat().replace("+00:00", "Z"),
        clients=sorted(set(clients), key=lambda c: c.value),
    )
    return resolved.name, entry

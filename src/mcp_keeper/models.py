"""Data models for mcp-keeper."""

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClientType(str, Enum):
    """AI clients whose MCP configuration can be managed."""
    CLAUDE_DESKTOP = "claude-desktop"
    CURSOR = "cursor"
    VSCODE = "vscode"
    WINDSURF = "windsurf"


class SourceKind(str, Enum):
    """Where an installed server was resolved from."""
    NPM = "npm"
    SMITHERY = "smithery"
    GITHUB = "github"
    LOCAL = "local"


class RuntimeKind(str, Enum):
    """Runtime used to launch a server."""
    NODE = "node"
    PYTHON = "python"
    DOCKER = "docker"


class ServerEntry(BaseModel):
    """A server as it appears in a client's config file.

    Keys the client writes that we do not model (``type``, ``url``,
    ``disabled``...) are kept so that a read/write round trip does not lose
    them. Numeric ``args`` items and ``env`` values are read as strings.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    command: Optional[str] = None
    args: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict:
        return self.model_dump(exclude_none=True)


class ClientConfig(BaseModel):
    """Uniform view of one client's configured servers."""
    servers: Dict[str, ServerEntry] = Field(default_factory=dict)


class LockEntry(BaseModel):
    """Canonical record of one installed server."""
    model_config = ConfigDict(populate_by_name=True)

    version: str
    source: SourceKind
    resolved: str
    integrity: str
    runtime: RuntimeKind
    command: str
    args: List[str] = Field(default_factory=list)
    env_vars: List[str] = Field(default_factory=list, alias="envVars")
    installed_at: str = Field(alias="installedAt")
    clients: List[ClientType] = Field(default_factory=list)

    @field_validator("clients")
    @classmethod
    def dedupe_clients(cls, v):
        """Target clients are a set; keep first-seen order."""
        return list(dict.fromkeys(v))


class LockState(BaseModel):
    """Everything mcp-keeper considers installed, keyed by server name."""
    model_config = ConfigDict(populate_by_name=True)

    lockfile_version: Literal[1] = Field(default=1, alias="lockfileVersion")
    servers: Dict[str, LockEntry] = Field(default_factory=dict)


class SyncActionType(str, Enum):
    """Corrective action for one (server, client) pair."""
    ADD = "add"
    EXTRA = "extra"
    REMOVE = "remove"
    OK = "ok"
    CHANGED = "changed"


class SyncAction(BaseModel):
    """One computed reconciliation step. Never persisted."""
    server: str
    client: ClientType
    action: SyncActionType
    entry: Optional[ServerEntry] = None
    details: Optional[List[str]] = None


class SnapshotMeta(BaseModel):
    """A stored lockfile snapshot; index 0 is the most recent."""
    index: int
    filename: str
    created_at: str
    size_bytes: int


class ProbeState(str, Enum):
    """Handshake progress of a single probe."""
    NOT_STARTED = "not_started"
    SPAWNED = "spawned"
    INITIALIZE_SENT = "initialize_sent"
    INITIALIZE_ACKED = "initialize_acked"
    CAPABILITIES_REQUESTED = "capabilities_requested"
    CAPABILITIES_ACKED = "capabilities_acked"
    TIMED_OUT = "timed_out"
    SPAWN_FAILED = "spawn_failed"
    EXITED_PREMATURELY = "exited_prematurely"


class ProbeError(str, Enum):
    """Why a probe did not report the server alive."""
    SPAWN_FAILED = "spawn_failed"
    TIMED_OUT = "timed_out"
    EXITED_PREMATURELY = "exited_prematurely"
    NOT_INSTALLED = "not_installed"
    INTERNAL = "internal"


class ProbeResult(BaseModel):
    """Outcome of probing one server."""
    name: str
    alive: bool
    latency_ms: Optional[float] = None
    error: Optional[ProbeError] = None
    message: Optional[str] = None
    exit_code: Optional[int] = None
    state: ProbeState = ProbeState.NOT_STARTED
    tools: Optional[List[str]] = None

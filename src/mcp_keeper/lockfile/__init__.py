"""Lock file management for installed MCP servers."""

from .manager import LockFileManager, find_lockfile, resolve_lockfile_path, serialize_lock_state
from .rollback import RollbackBuffer, MAX_SNAPSHOTS

__all__ = [
    "LockFileManager",
    "RollbackBuffer",
    "MAX_SNAPSHOTS",
    "find_lockfile",
    "resolve_lockfile_path",
    "serialize_lock_state"
]

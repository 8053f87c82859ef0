"""Lock file manager: the canonical record of installed MCP servers."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Any

from pydantic import ValidationError

from mcp_keeper.config import config
from mcp_keeper.errors import LockfileParseError, LockfileWriteError
from mcp_keeper.lockfile.rollback import RollbackBuffer
from mcp_keeper.models import LockEntry, LockState
from mcp_keeper.storage import write_atomic

logger = logging.getLogger(__name__)


def find_lockfile(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start`` (default: cwd) looking for a lockfile."""
    directory = Path(start or Path.cwd()).resolve()
    for candidate_dir in [directory, *directory.parents]:
        candidate = candidate_dir / config.lockfile_name
        if candidate.is_file():
            return candidate
    return None


def resolve_lockfile_path() -> Path:
    """Lockfile to use: explicit setting, then local project, then global."""
    if config.lockfile:
        return Path(config.lockfile).expanduser()
    return find_lockfile() or config.global_lockfile


def serialize_lock_state(state: LockState) -> str:
    """Serialize with sorted server keys so the file diffs cleanly in git."""
    data: Dict[str, Any] = {
        "lockfileVersion": state.lockfile_version,
        "servers": {
            name: state.servers[name].model_dump(by_alias=True, mode="json")
            for name in sorted(state.servers)
        },
    }
    return json.dumps(data, indent=2) + "\n"


class LockFileManager:
    """Reads and writes the lockfile.

    Every write snapshots the previous on-disk content into the rollback
    buffer first, then replaces the file atomically.
    """

    def __init__(self, lockfile_path: Optional[Path] = None, rollback: Optional[RollbackBuffer] = None):
        """
        Initialize lock file manager.

        Args:
            lockfile_path: Path to lock file. Defaults to the resolved
                project or global lockfile.
            rollback: Snapshot buffer. Defaults to the one in the data dir.
        """
        self.lockfile_path = Path(lockfile_path) if lockfile_path else resolve_lockfile_path()
        self.rollback = rollback if rollback is not None else RollbackBuffer()

    def read_lock_state(self) -> LockState:
        """Load the lock state. A missing file is an empty state."""
        try:
            raw = self.lockfile_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return LockState()
        except (OSError, UnicodeDecodeError) as e:
            raise LockfileParseError(self.lockfile_path, e) from e

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("lockfile root must be a JSON object")
            return LockState.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise LockfileParseError(self.lockfile_path, e) from e

    def write_lock_state(self, state: LockState) -> None:
        """Snapshot the current file, then write ``state`` atomically."""
        content = serialize_lock_state(state)
        try:
            if self.lockfile_path.exists():
                self.rollback.snapshot_before_write(self.lockfile_path.read_bytes())
            write_atomic(self.lockfile_path, content)
        except OSError as e:
            logger.warning(f"Lockfile write failed: {e}")
            raise LockfileWriteError(self.lockfile_path, e) from e
        logger.debug(f"Wrote {len(state.servers)} server(s) to {self.lockfile_path}")

    def add_entry(self, name: str, entry: LockEntry) -> None:
        """Add or replace one server entry."""
        state = self.read_lock_state()
        state.servers[name] = entry
        self.write_lock_state(state)

    def remove_entry(self, name: str) -> bool:
        """Remove an entry. Returns False (and writes nothing) if absent."""
        state = self.read_lock_state()
        if name not in state.servers:
            return False
        del state.servers[name]
        self.write_lock_state(state)
        return True

    def get_entry(self, name: str) -> Optional[LockEntry]:
        """Get a lock entry by server name."""
        return self.read_lock_state().servers.get(name)

    def get_locked_version(self, name: str) -> Optional[str]:
        entry = self.get_entry(name)
        return entry.version if entry else None

    def list_entries(self) -> List[str]:
        return sorted(self.read_lock_state().servers)

    def create_empty(self) -> None:
        self.write_lock_state(LockState())

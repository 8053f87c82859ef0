"""Ring buffer of lockfile snapshots used by `mcp-keeper rollback`.

A snapshot is taken before each lockfile write whose content differs from the
newest stored snapshot. Only the most recent ``max_snapshots`` are kept.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from mcp_keeper.config import config
from mcp_keeper.errors import SnapshotNotFoundError
from mcp_keeper.models import SnapshotMeta
from mcp_keeper.storage import write_atomic

logger = logging.getLogger(__name__)

MAX_SNAPSHOTS = 5


def _timestamp() -> str:
    # Colons and periods are not safe in filenames on every platform
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


class RollbackBuffer:
    """Stores lockfile snapshots as individual JSON files in one directory."""

    def __init__(self, directory: Optional[Path] = None, max_snapshots: Optional[int] = None):
        self.directory = Path(directory) if directory else config.rollback_dir
        self.max_snapshots = max_snapshots or config.max_snapshots or MAX_SNAPSHOTS

    def _snapshot_files(self) -> List[Path]:
        """Snapshot files sorted oldest to newest."""
        if not self.directory.exists():
            return []
        return sorted(p for p in self.directory.iterdir() if p.suffix == ".json" and p.is_file())

    def _next_path(self) -> Path:
        stamp = _timestamp()
        seq = 0
        candidate = self.directory / f"{stamp}-{seq:02d}.json"
        while candidate.exists():
            seq += 1
            candidate = self.directory / f"{stamp}-{seq:02d}.json"
        return candidate

    def snapshot_before_write(self, content: Union[str, bytes]) -> Optional[Path]:
        """
        Store ``content`` as the newest snapshot.

        Bytes are stored as-is, so a lockfile that is not valid UTF-8 is
        still kept before it is overwritten.

        Returns:
            Path of the new snapshot, or None when the content is identical
            to the newest snapshot already stored.
        """
        existing = self._snapshot_files()
        payload = content.encode("utf-8") if isinstance(content, str) else content

        if existing and existing[-1].read_bytes() == payload:
            logger.debug("Lockfile unchanged since last snapshot, skipping")
            return None

        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._next_path()
        write_atomic(path, payload)
        logger.debug(f"Stored lockfile snapshot {path.name}")

        self.evict()
        return path

    def evict(self) -> int:
        """Remove the oldest snapshots beyond the buffer size."""
        files = self._snapshot_files()
        excess = len(files) - self.max_snapshots
        removed = 0
        for path in files[:max(excess, 0)]:
            path.unlink()
            removed += 1
            logger.debug(f"Evicted snapshot {path.name}")
        return removed

    def list(self) -> List[SnapshotMeta]:
        """List snapshots newest first. Index 0 is the most recent."""
        snapshots = []
        for index, path in enumerate(reversed(self._snapshot_files())):
            stat = path.stat()
            snapshots.append(SnapshotMeta(
                index=index,
                filename=path.name,
                created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                size_bytes=stat.st_size,
            ))
        return snapshots

    def _path(self, index: int) -> Path:
        files = list(reversed(self._snapshot_files()))
        if index < 0 or index >= len(files):
            raise SnapshotNotFoundError(index)
        return files[index]

    def read(self, index: int) -> str:
        """Read snapshot content by recency rank. Undecodable bytes are replaced."""
        return self._path(index).read_bytes().decode("utf-8", errors="replace")

    def restore(self, index: int, target_path: Path) -> str:
        """
        Write snapshot ``index`` over ``target_path`` byte for byte.

        Returns:
            The restored content, so callers can show what changed.
        """
        payload = self._path(index).read_bytes()
        write_atomic(target_path, payload)
        logger.info(f"Restored snapshot [{index}] to {target_path}")
        return payload.decode("utf-8", errors="replace")

"""Exception types raised at the lockfile and client config boundaries."""

from pathlib import Path
from typing import Optional, Union


class KeeperError(Exception):
    """Base class for mcp-keeper errors."""

    kind = "error"

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class ConfigParseError(KeeperError):
    """A client config file exists but is not valid JSON."""

    kind = "config_parse"

    def __init__(self, path: Union[str, Path], cause: object):
        super().__init__(f"Failed to parse config: {path} ({cause})", path)
        self.cause = cause


class ConfigWriteError(KeeperError):
    """Writing a client config file failed."""

    kind = "config_write"

    def __init__(self, path: Union[str, Path], cause: object):
        super().__init__(f"Failed to write config: {path} ({cause})", path)
        self.cause = cause


class LockfileParseError(KeeperError):
    """The lockfile exists but cannot be parsed into a lock state."""

    kind = "lockfile_parse"

    def __init__(self, path: Union[str, Path], cause: object):
        super().__init__(f"Failed to parse lockfile: {path} ({cause})", path)
        self.cause = cause


class LockfileWriteError(KeeperError):
    """Writing the lockfile failed."""

    kind = "lockfile_write"

    def __init__(self, path: Union[str, Path], cause: object):
        super().__init__(f"Failed to write lockfile: {path} ({cause})", path)
        self.cause = cause


class SnapshotNotFoundError(KeeperError):
    """No rollback snapshot exists at the requested index."""

    kind = "snapshot_not_found"

    def __init__(self, index: int):
        super().__init__(f"Snapshot [{index}] does not exist")
        self.index = index


class UnknownClientError(KeeperError):
    """A client id outside the supported set was requested."""

    kind = "unknown_client"

    def __init__(self, name: str):
        super().__init__(f"Unknown client: {name}")
        self.name = name

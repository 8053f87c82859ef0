"""Atomic file operations for lockfile and client config persistence."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def write_atomic(file_path: Union[str, Path], content: Union[str, bytes], mode: Optional[int] = None) -> None:
    """
    Write content to file atomically.

    Strategy:
    1. Write to temporary file in same directory
    2. fsync to ensure data on disk
    3. Rename to target filename (atomic operation)

    Readers see either the old file or the complete new one, never a
    partial write.

    Args:
        file_path: Target file path
        content: Text (written as UTF-8) or raw bytes
        mode: Optional permission bits applied to the file before the rename

    Raises:
        OSError: If write or rename fails
    """
    file_path = Path(file_path)

    # Ensure parent directory exists
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory (ensures same filesystem)
    temp_fd, temp_path = tempfile.mkstemp(
        dir=file_path.parent,
        prefix=f".{file_path.name}.tmp."
    )

    try:
        with os.fdopen(temp_fd, "wb") as handle:
            handle.write(content.encode("utf-8") if isinstance(content, str) else content)
            handle.flush()
            os.fsync(handle.fileno())

        if mode is not None:
            os.chmod(temp_path, mode)

        os.replace(temp_path, file_path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temp file {temp_path}: {e}")
        raise

    logger.debug(f"Wrote {file_path}")

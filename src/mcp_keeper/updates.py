"""Cached update checks for installed servers.

The check runs in a background thread with its own cache file and TTL. It
shares nothing with the command that started it, and its failures are only
logged; they never reach the foreground command.
"""

import asyncio
import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcp_keeper.config import config
from mcp_keeper.models import LockEntry, LockState, SourceKind
from mcp_keeper.probe.executor import run_bounded
from mcp_keeper.storage import write_atomic
from mcp_keeper.versions import compare_versions, detect_update_type

logger = logging.getLogger(__name__)

# (server name, lock entry) -> latest published version, or None if unknown
VersionLookup = Callable[[str, LockEntry], Awaitable[Optional[str]]]

CHECK_CONCURRENCY = 5


class UpdateInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    server: str
    source: SourceKind
    current_version: str = Field(alias="currentVersion")
    latest_version: str = Field(alias="latestVersion")
    has_update: bool = Field(alias="hasUpdate")
    update_type: Optional[str] = Field(default=None, alias="updateType")


class UpdateCheckCache(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_check: datetime = Field(alias="lastCheck")
    updates: List[UpdateInfo] = Field(default_factory=list)


def read_update_cache(path: Optional[Path] = None) -> Optional[UpdateCheckCache]:
    path = path or config.update_cache_file
    try:
        return UpdateCheckCache.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except FileNotFoundError:
        return None
    except (OSError, ValueError, ValidationError) as e:
        logger.debug(f"Ignoring unreadable update cache {path}: {e}")
        return None


def write_update_cache(cache: UpdateCheckCache, path: Optional[Path] = None) -> bool:
    path = path or config.update_cache_file
    try:
        write_atomic(path, cache.model_dump_json(by_alias=True, indent=2))
        return True
    except OSError as e:
        logger.debug(f"Could not write update cache {path}: {e}")
        return False


def is_cache_stale(cache: UpdateCheckCache, ttl_hours: Optional[float] = None,
                   now: Optional[datetime] = None) -> bool:
    ttl = timedelta(hours=ttl_hours if ttl_hours is not None else config.update_check_ttl_hours)
    now = now or datetime.now(timezone.utc)
    last = cache.last_check
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return now - last > ttl


async def check_version(name: str, entry: LockEntry, lookup: VersionLookup) -> UpdateInfo:
    """Compare one lock entry against the latest version ``lookup`` reports."""
    current = entry.version
    latest = await lookup(name, entry)

    if not latest or latest == current:
        return UpdateInfo(
            server=name,
            source=entry.source,
            current_version=current,
            latest_version=latest or current,
            has_update=False,
        )

    has_update = compare_versions(current, latest) == -1
    return UpdateInfo(
        server=name,
        source=entry.source,
        current_version=current,
        latest_version=latest,
        has_update=has_update,
        update_type=detect_update_type(current, latest) if has_update else None,
    )


async def check_all_versions(state: LockState, lookup: VersionLookup) -> List[UpdateInfo]:
    """Check every installed server, at most five lookups at a time."""
    def job(name: str, entry: LockEntry):
        return lambda: check_version(name, entry, lookup)

    outcomes = await run_bounded(
        {name: job(name, entry) for name, entry in state.servers.items()},
        CHECK_CONCURRENCY,
    )

    updates = []
    for name, outcome in outcomes.items():
        if outcome.ok:
            updates.append(outcome.value)
        else:
            logger.debug(f"Version lookup for {name} failed: {outcome.error}")
    return updates


async def check_for_updates(state: LockState, lookup: VersionLookup,
                            cache_path: Optional[Path] = None) -> List[UpdateInfo]:
    """Foreground check; refreshes the cache."""
    updates = await check_all_versions(state, lookup)
    write_update_cache(
        UpdateCheckCache(last_check=datetime.now(timezone.utc), updates=updates),
        cache_path,
    )
    return updates


def _run_background_check(state: LockState, lookup: VersionLookup, cache_path: Optional[Path]) -> None:
    try:
        asyncio.run(check_for_updates(state, lookup, cache_path))
    except Exception as e:
        logger.debug(f"Background update check failed: {e}")


def check_for_updates_background(state: LockState, lookup: VersionLookup,
                                 cache_path: Optional[Path] = None) -> Optional[threading.Thread]:
    """
    Start an update check in a daemon thread unless the cache is still fresh.

    Returns:
        The started thread, or None when no check was needed.
    """
    cache = read_update_cache(cache_path)
    if cache is not None and not is_cache_stale(cache):
        return None

    thread = threading.Thread(
        target=_run_background_check,
        args=(state.model_copy(deep=True), lookup, cache_path),
        name="mcp-keeper-update-check",
        daemon=True,
    )
    thread.start()
    return thread


def available_updates(cache_path: Optional[Path] = None) -> List[UpdateInfo]:
    """Updates recorded in the cache by the last check."""
    cache = read_update_cache(cache_path)
    if cache is None:
        return []
    return [u for u in cache.updates if u.has_update]

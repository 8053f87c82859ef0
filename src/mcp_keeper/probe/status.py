"""Probe many servers at once for `status` and `test`."""

import logging
from typing import Dict, List, Mapping, Optional

from mcp_keeper.config import config
from mcp_keeper.models import LockEntry, LockState, ProbeError, ProbeResult, ServerEntry
from mcp_keeper.probe.executor import run_bounded
from mcp_keeper.probe.prober import ServerProbe

logger = logging.getLogger(__name__)


def entry_from_lock(lock_entry: LockEntry) -> ServerEntry:
    """Launch spec for a lock entry. Env values are not stored, so none are passed."""
    return ServerEntry(command=lock_entry.command, args=list(lock_entry.args))


async def probe_entries(
    entries: Mapping[str, ServerEntry],
    deep: bool,
    prober: Optional[ServerProbe] = None,
    timeout: Optional[float] = None,
    concurrency: Optional[int] = None,
) -> List[ProbeResult]:
    """Probe every entry with bounded concurrency; results sorted by name."""
    prober = prober or ServerProbe()
    limit = concurrency or config.probe.concurrency

    def job(name: str, entry: ServerEntry):
        return lambda: prober.probe(name, entry, deep=deep, timeout=timeout)

    outcomes = await run_bounded({name: job(name, entry) for name, entry in entries.items()}, limit)

    results = []
    for name, outcome in outcomes.items():
        if outcome.ok:
            results.append(outcome.value)
        else:
            logger.error(f"Probe of {name} raised: {outcome.error}")
            results.append(ProbeResult(
                name=name,
                alive=False,
                error=ProbeError.INTERNAL,
                message=f"probe error: {outcome.error}",
            ))
    return sorted(results, key=lambda r: r.name)


async def get_server_statuses(
    state: LockState,
    server_name: Optional[str] = None,
    prober: Optional[ServerProbe] = None,
    timeout: Optional[float] = None,
    concurrency: Optional[int] = None,
) -> List[ProbeResult]:
    """
    Quick-probe installed servers from the lockfile.

    Asking for a name that is not in the lockfile yields a single
    ``not_installed`` result instead of an error.
    """
    if server_name is not None:
        lock_entry = state.servers.get(server_name)
        if lock_entry is None:
            return [ProbeResult(
                name=server_name,
                alive=False,
                error=ProbeError.NOT_INSTALLED,
                message="not in lockfile",
            )]
        entries: Dict[str, ServerEntry] = {server_name: entry_from_lock(lock_entry)}
    else:
        entries = {name: entry_from_lock(e) for name, e in state.servers.items()}

    if not entries:
        return []
    return await probe_entries(entries, deep=False, prober=prober, timeout=timeout, concurrency=concurrency)


async def verify_servers(
    entries: Mapping[str, ServerEntry],
    prober: Optional[ServerProbe] = None,
    timeout: Optional[float] = None,
    concurrency: Optional[int] = None,
) -> List[ProbeResult]:
    """Deep-probe servers as configured in a client (env values included)."""
    return await probe_entries(entries, deep=True, prober=prober, timeout=timeout, concurrency=concurrency)

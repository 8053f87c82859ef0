"""Drift detection between the lockfile and client configs.

Two modes:

* ``compute_diff`` treats the lockfile as the source of truth.
* ``compute_diff_from_client`` treats one client's config as the source of
  truth and compares every other client against it.

Both are pure functions over already-loaded state. Actions for different
(server, client) pairs are independent and can be applied in any order.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from mcp_keeper.models import (
    ClientConfig,
    ClientType,
    LockEntry,
    LockState,
    ServerEntry,
    SyncAction,
    SyncActionType,
)

ClientConfigs = Mapping[ClientType, ClientConfig]


def reconstruct_server_entry(lock_entry: LockEntry) -> ServerEntry:
    """
    Build a client config entry from a lock entry.

    The lockfile only stores env var names, so values come back as empty
    placeholders the user has to fill in.
    """
    entry = ServerEntry(command=lock_entry.command)
    if lock_entry.args:
        entry.args = list(lock_entry.args)
    if lock_entry.env_vars:
        entry.env = {name: "" for name in lock_entry.env_vars}
    return entry


def entry_diffs(a: ServerEntry, b: ServerEntry) -> List[str]:
    """Field-level differences between two entries; empty if equivalent."""
    diffs = []

    if a.command != b.command:
        diffs.append(f"command: {a.command} → {b.command}")

    a_args = a.args or []
    b_args = b.args or []
    if a_args != b_args:
        diffs.append(f"args: {json.dumps(a_args)} → {json.dumps(b_args)}")

    a_env = a.env or {}
    b_env = b.env or {}
    if a_env != b_env:
        diffs.append(
            f"env: {json.dumps(a_env, sort_keys=True)} → {json.dumps(b_env, sort_keys=True)}"
        )

    return diffs


def _extra_action(remove: bool) -> SyncActionType:
    return SyncActionType.REMOVE if remove else SyncActionType.EXTRA


def compute_diff(
    state: LockState,
    client_configs: ClientConfigs,
    remove: bool = False,
) -> List[SyncAction]:
    """
    Lockfile is the source of truth.

    - server in lockfile, missing from an intended client -> add
    - server in a client, not in lockfile -> extra (remove if ``remove``)
    - server in both -> ok

    Clients without a loaded config are skipped.
    """
    actions = []

    for server, lock_entry in state.servers.items():
        for client in dict.fromkeys(lock_entry.clients):
            client_config = client_configs.get(client)
            if client_config is None:
                continue

            if server in client_config.servers:
                actions.append(SyncAction(server=server, client=client, action=SyncActionType.OK))
            else:
                actions.append(SyncAction(
                    server=server,
                    client=client,
                    action=SyncActionType.ADD,
                    entry=reconstruct_server_entry(lock_entry),
                ))

    extra = _extra_action(remove)
    for client, client_config in client_configs.items():
        for server in client_config.servers:
            if server not in state.servers:
                actions.append(SyncAction(server=server, client=client, action=extra))

    return actions


def compute_diff_from_client(
    source: ClientType,
    client_configs: ClientConfigs,
    remove: bool = False,
) -> List[SyncAction]:
    """
    ``source`` client's config is the source of truth for every other client.

    Servers present on both sides with a different command, args or env are
    reported as ``changed`` with a per-field description.
    """
    source_config = client_configs.get(source)
    if source_config is None:
        return []

    actions = []
    extra = _extra_action(remove)

    for client, client_config in client_configs.items():
        if client == source:
            continue

        for server, entry in source_config.servers.items():
            target = client_config.servers.get(server)
            if target is None:
                actions.append(SyncAction(
                    server=server, client=client, action=SyncActionType.ADD, entry=entry
                ))
                continue

            details = entry_diffs(target, entry)
            if details:
                actions.append(SyncAction(
                    server=server,
                    client=client,
                    action=SyncActionType.CHANGED,
                    entry=entry,
                    details=details,
                ))
            else:
                actions.append(SyncAction(server=server, client=client, action=SyncActionType.OK))

        for server in client_config.servers:
            if server not in source_config.servers:
                actions.append(SyncAction(server=server, client=client, action=extra))

    return actions


@dataclass
class DiffResult:
    """One difference between two clients' configs."""
    server: str
    change: str  # "added", "removed" or "changed"
    details: List[str] = field(default_factory=list)


_CHANGE_ORDER: Dict[str, int] = {"removed": 0, "added": 1, "changed": 2}


def diff_client_configs(config_a: ClientConfig, config_b: ClientConfig) -> List[DiffResult]:
    """
    Compare client A (source) against client B (target).

    - added: in B but not A
    - removed: in A but not B
    - changed: in both with different command/args/env
    """
    results = []
    servers_a = config_a.servers
    servers_b = config_b.servers

    for name in servers_b:
        if name not in servers_a:
            results.append(DiffResult(server=name, change="added"))

    for name, entry in servers_a.items():
        if name not in servers_b:
            results.append(DiffResult(server=name, change="removed"))
            continue
        details = entry_diffs(entry, servers_b[name])
        if details:
            results.append(DiffResult(server=name, change="changed", details=details))

    results.sort(key=lambda r: (_CHANGE_ORDER[r.change], r.server))
    return results

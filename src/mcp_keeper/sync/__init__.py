"""Reconciliation between the lockfile and client configs."""

from .diff import (
    DiffResult,
    compute_diff,
    compute_diff_from_client,
    diff_client_configs,
    entry_diffs,
    reconstruct_server_entry,
)
from .engine import ApplyResult, ClientSnapshot, SyncError, apply_sync_actions, get_client_configs

__all__ = [
    "DiffResult",
    "compute_diff",
    "compute_diff_from_client",
    "diff_client_configs",
    "entry_diffs",
    "reconstruct_server_entry",
    "ApplyResult",
    "ClientSnapshot",
    "SyncError",
    "apply_sync_actions",
    "get_client_configs"
]

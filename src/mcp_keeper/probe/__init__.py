"""Liveness and handshake probing for MCP servers."""

from .jsonrpc import LineBuffer
from .prober import ServerProbe, Settlement
from .executor import TaskOutcome, run_bounded
from .status import get_server_statuses, probe_entries, verify_servers
from .health import HealthStatus, check_server_health, quick_health_probe

__all__ = [
    "LineBuffer",
    "ServerProbe",
    "Settlement",
    "TaskOutcome",
    "run_bounded",
    "get_server_statuses",
    "probe_entries",
    "verify_servers",
    "HealthStatus",
    "check_server_health",
    "quick_health_probe"
]

"""Step-by-step health checks used by `mcp-keeper doctor`."""

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from mcp_keeper.models import ServerEntry
from mcp_keeper.probe.prober import ServerProbe, kill_process

logger = logging.getLogger(__name__)

SPAWN_CHECK_SECONDS = 3.0


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class CheckResult:
    name: str
    passed: bool
    message: str
    skipped: bool = False


@dataclass
class HealthResult:
    server_name: str
    status: HealthStatus
    checks: List[CheckResult] = field(default_factory=list)


def check_runtime(command: Optional[str], env: Optional[Dict[str, str]] = None) -> CheckResult:
    if not command:
        return CheckResult("Runtime", False, "no command configured")
    path = (env or {}).get("PATH") or os.environ.get("PATH")
    resolved = shutil.which(command, path=path)
    if resolved is None:
        return CheckResult("Runtime", False, f"{command} not found on PATH")
    return CheckResult("Runtime", True, f"{command} found at {resolved}")


def check_env_vars(env: Optional[Dict[str, str]]) -> CheckResult:
    """Flag env vars still holding the empty placeholder written by sync."""
    if not env:
        return CheckResult("Env vars", True, "none required")
    missing = sorted(name for name, value in env.items() if value == "")
    if missing:
        return CheckResult("Env vars", False, f"missing values: {', '.join(missing)}")
    return CheckResult("Env vars", True, f"{len(env)} set")


async def check_process_spawn(entry: ServerEntry, prober: ServerProbe,
                              seconds: float = SPAWN_CHECK_SECONDS) -> CheckResult:
    """Start the server and make sure it does not crash right away."""
    try:
        process = await prober.spawner(
            entry.command,
            *(entry.args or []),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            env={**os.environ, **(entry.env or {})},
        )
    except OSError as e:
        return CheckResult("Process", False, f"spawn error: {e}")

    try:
        code = await asyncio.wait_for(process.wait(), seconds)
    except asyncio.TimeoutError:
        kill_process(process)
        await process.wait()
        return CheckResult("Process", True, "starts successfully (still running)")
    except asyncio.CancelledError:
        kill_process(process)
        raise

    if code == 0:
        return CheckResult("Process", True, "exits cleanly")
    return CheckResult("Process", False, f"exits with code {code}")


async def check_server_health(name: str, entry: ServerEntry,
                              prober: Optional[ServerProbe] = None) -> HealthResult:
    """
    Run runtime, process, handshake and env checks for one server.

    Later checks are skipped when an earlier one makes them meaningless.
    """
    prober = prober or ServerProbe()
    checks = []

    runtime = check_runtime(entry.command, entry.env)
    checks.append(runtime)

    if not runtime.passed:
        checks.append(CheckResult("Process", False, "skipped (runtime missing)", skipped=True))
        checks.append(CheckResult("MCP handshake", False, "skipped (runtime missing)", skipped=True))
    else:
        spawn = await check_process_spawn(entry, prober)
        checks.append(spawn)
        if not spawn.passed:
            checks.append(CheckResult("MCP handshake", False, "skipped (process failed)", skipped=True))
        else:
            result = await prober.quick_probe(name, entry)
            if result.alive:
                checks.append(CheckResult("MCP handshake", True, f"responds in {result.latency_ms:g}ms"))
            else:
                checks.append(CheckResult("MCP handshake", False, result.message or "no response"))

    checks.append(check_env_vars(entry.env))

    failed = [c for c in checks if not c.skipped and not c.passed]
    status = HealthStatus.UNHEALTHY if failed else HealthStatus.HEALTHY
    return HealthResult(server_name=name, status=status, checks=checks)


async def quick_health_probe(entry: ServerEntry, prober: Optional[ServerProbe] = None,
                             timeout: Optional[float] = None) -> HealthStatus:
    """Status only: resolvable command plus an initialize response."""
    prober = prober or ServerProbe()
    try:
        result = await prober.quick_probe(entry.command or "", entry, timeout=timeout)
    except OSError as e:
        logger.debug(f"Quick health probe failed: {e}")
        return HealthStatus.UNKNOWN
    return HealthStatus.HEALTHY if result.alive else HealthStatus.UNHEALTHY

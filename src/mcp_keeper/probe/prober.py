"""
Spawn an MCP server and classify it by running the JSON-RPC handshake.

A probe walks through::

    not_started -> spawned -> initialize_sent -> initialize_acked
        -> capabilities_requested -> capabilities_acked

and ends in exactly one terminal state: ``capabilities_acked`` (or
``initialize_acked`` for a quick probe), ``timed_out``, ``spawn_failed`` or
``exited_prematurely``. Whichever signal arrives first settles the probe and
kills the child process; later signals are ignored.
"""

import asyncio
import logging
import os
import shutil
import time
from typing import Any, Awaitable, Callable, List, Optional

from mcp_keeper.config import ProbeConfig, config
from mcp_keeper.models import ProbeError, ProbeResult, ProbeState, ServerEntry
from mcp_keeper.probe.jsonrpc import (
    INITIALIZE_ID,
    TOOLS_LIST_ID,
    LineBuffer,
    encode_message,
    extract_tool_names,
    initialize_request,
    initialized_notification,
    is_response,
    tools_list_request,
)

logger = logging.getLogger(__name__)

# Same call shape as asyncio.create_subprocess_exec
Spawner = Callable[..., Awaitable[Any]]

READ_CHUNK = 4096
REAP_TIMEOUT = 5.0


def kill_process(process: Any) -> None:
    """Kill ``process`` if it is still running."""
    if process is None or process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        pass


class Settlement:
    """
    One-shot resolution of a probe.

    The first ``settle`` call kills the attached process, then stores the
    result; every later call is a no-op returning False.
    """

    def __init__(self):
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()
        self.process: Any = None

    @property
    def settled(self) -> bool:
        return self._future.done()

    def settle(self, result: ProbeResult) -> bool:
        if self._future.done():
            return False
        kill_process(self.process)
        self._future.set_result(result)
        return True

    async def wait(self) -> ProbeResult:
        return await self._future


class _ProbeSession:
    """State for a single probe run."""

    def __init__(self, name: str, entry: ServerEntry, deep: bool, timeout: float,
                 spawner: Spawner, probe_config: ProbeConfig):
        self.name = name
        self.entry = entry
        self.deep = deep
        self.timeout = timeout
        self.spawner = spawner
        self.config = probe_config
        self.state = ProbeState.NOT_STARTED
        self.started = 0.0
        self.process: Any = None
        self.settlement: Optional[Settlement] = None

    def _latency(self) -> float:
        return round((time.monotonic() - self.started) * 1000, 1)

    def _succeed(self, tools: Optional[List[str]] = None) -> None:
        self.settlement.settle(ProbeResult(
            name=self.name,
            alive=True,
            latency_ms=self._latency(),
            state=self.state,
            tools=tools,
        ))

    def _fail(self, state: ProbeState, error: ProbeError, message: str,
              exit_code: Optional[int] = None) -> bool:
        result = ProbeResult(
            name=self.name,
            alive=False,
            error=error,
            message=message,
            exit_code=exit_code,
            state=state,
        )
        if self.settlement is None:
            return False
        settled = self.settlement.settle(result)
        if settled:
            self.state = state
            logger.debug(f"Probe {self.name}: {message}")
        return settled

    def _on_timeout(self) -> None:
        self._fail(
            ProbeState.TIMED_OUT,
            ProbeError.TIMED_OUT,
            f"no response within {self.timeout:g}s",
        )

    async def _send(self, message: dict) -> None:
        try:
            self.process.stdin.write(encode_message(message))
            await self.process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            # The exit is reported by the reader once stdout closes
            logger.debug(f"Probe {self.name}: write failed: {e}")

    async def _handle(self, message: dict) -> None:
        if self.state == ProbeState.INITIALIZE_SENT and is_response(message, INITIALIZE_ID):
            self.state = ProbeState.INITIALIZE_ACKED
            if not self.deep:
                self._succeed()
                return
            await self._send(initialized_notification())
            self.state = ProbeState.CAPABILITIES_REQUESTED
            await self._send(tools_list_request())

        elif self.state == ProbeState.CAPABILITIES_REQUESTED and is_response(message, TOOLS_LIST_ID):
            self.state = ProbeState.CAPABILITIES_ACKED
            self._succeed(extract_tool_names(message))

    async def _read_stdout(self) -> None:
        buffer = LineBuffer()
        while not self.settlement.settled:
            try:
                chunk = await self.process.stdout.read(READ_CHUNK)
            except (OSError, ConnectionResetError):
                chunk = b""
            messages = buffer.feed(chunk) if chunk else buffer.flush()
            for message in messages:
                await self._handle(message)
                if self.settlement.settled:
                    return
            if not chunk:
                break

        if self.settlement.settled:
            return
        exit_code = await self.process.wait()
        self._fail(
            ProbeState.EXITED_PREMATURELY,
            ProbeError.EXITED_PREMATURELY,
            f"process exited with code {exit_code} before completing handshake",
            exit_code=exit_code,
        )

    def _spawn_failed(self, message: str) -> ProbeResult:
        self.state = ProbeState.SPAWN_FAILED
        return ProbeResult(
            name=self.name,
            alive=False,
            error=ProbeError.SPAWN_FAILED,
            message=message,
            state=self.state,
        )

    async def run(self) -> ProbeResult:
        command = self.entry.command
        if not command:
            return self._spawn_failed("no command configured")

        env = {**os.environ, **(self.entry.env or {})}
        if not self.deep and shutil.which(command, path=env.get("PATH")) is None:
            return self._spawn_failed(f"command not found: {command}")

        self.started = time.monotonic()
        try:
            self.process = await self.spawner(
                command,
                *(self.entry.args or []),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                env=env,
            )
        except OSError as e:
            return self._spawn_failed(f"spawn error: {e}")

        self.state = ProbeState.SPAWNED
        self.settlement = Settlement()
        self.settlement.process = self.process

        loop = asyncio.get_running_loop()
        timer = loop.call_later(self.timeout, self._on_timeout)
        reader = asyncio.ensure_future(self._read_stdout())

        try:
            self.state = ProbeState.INITIALIZE_SENT
            await self._send(initialize_request(
                self.config.client_name,
                self.config.client_version,
                self.config.protocol_version,
            ))
            return await self.settlement.wait()
        finally:
            timer.cancel()
            reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)
            kill_process(self.process)
            await self._reap()

    async def _reap(self) -> None:
        try:
            await asyncio.wait_for(self.process.wait(), REAP_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"Probe {self.name}: process {getattr(self.process, 'pid', '?')} did not exit after kill")


class ServerProbe:
    """Runs deep or quick probes against server commands."""

    def __init__(self, spawner: Optional[Spawner] = None, probe_config: Optional[ProbeConfig] = None):
        self.spawner = spawner or asyncio.create_subprocess_exec
        self.config = probe_config or config.probe

    async def probe(self, name: str, entry: ServerEntry, deep: bool = True,
                    timeout: Optional[float] = None) -> ProbeResult:
        """
        Probe one server.

        Args:
            name: Server name, echoed in the result
            entry: Command, args and env to launch
            deep: Run initialize and tools/list (True) or initialize only
            timeout: Seconds before giving up; defaults depend on ``deep``

        Returns:
            ProbeResult. Failures are reported in the result, not raised.
        """
        if timeout is None:
            timeout = self.config.deep_timeout if deep else self.config.quick_timeout
        session = _ProbeSession(name, entry, deep, timeout, self.spawner, self.config)
        result = await session.run()
        logger.debug(f"Probe {name} finished in state {result.state.value}")
        return result

    async def deep_probe(self, name: str, entry: ServerEntry, timeout: Optional[float] = None) -> ProbeResult:
        return await self.probe(name, entry, deep=True, timeout=timeout)

    async def quick_probe(self, name: str, entry: ServerEntry, timeout: Optional[float] = None) -> ProbeResult:
        return await self.probe(name, entry, deep=False, timeout=timeout)

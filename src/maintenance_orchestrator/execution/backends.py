#!/usr/bin/env python3
"""
Execution backends for Maintenance Orchestrator

Two implementations behind one ``execute`` contract:

* LiveBackend serializes the plan into a script, runs it through a single
  PowerShell child process and streams its output line by line.
* SimulatedBackend replays the plan as a timed trace derived from operation
  labels and never touches the host.

The backend is chosen once per run by probing the host.
"""

import asyncio
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import logging

from ..core.config import config
from ..core.errors import HostUnsupportedError, SpawnFailedError
from ..core.platform_compat import PlatformInterface, platform_manager
from ..planning.plan_builder import Operation, Plan
from ..planning.script import parse_step_marker, render_script
from .events import (
    OutputCallback,
    ProgressCallback,
    ProgressReporter,
    emit,
    sleep_or_cancelled,
    wait_or_cancelled,
)
from .models import ErrorKind, ExecutionMode, OutputEvent, RunResult

logger = logging.getLogger(__name__)

# StreamReader line limit for child output
STREAM_LIMIT = 1024 * 1024

CommandBuilder = Callable[[Path], List[str]]


@dataclass(frozen=True)
class HostCapability:
    """Result of probing the host for live execution support"""
    live_supported: bool
    interpreter: Optional[str] = None
    reason: Optional[str] = None

    @property
    def mode(self) -> ExecutionMode:
        return ExecutionMode.LIVE if self.live_supported else ExecutionMode.SIMULATED


def probe_host(platform: Optional[PlatformInterface] = None,
               settings: Optional[Dict[str, Any]] = None,
               force_simulation: bool = False) -> HostCapability:
    """Decide whether the plan's command dialect can run on this host"""
    platform = platform or platform_manager.get_platform()
    settings = settings if settings is not None else config.section('execution')

    if force_simulation or settings.get('force_simulation'):
        return HostCapability(False, reason="Simulation requested")

    try:
        interpreter = _require_live_host(platform, settings.get('interpreter'))
    except HostUnsupportedError as e:
        return HostCapability(False, reason=str(e))

    return HostCapability(True, interpreter=interpreter)


def _require_live_host(platform: PlatformInterface, preferred: Optional[str]) -> str:
    if not platform.is_windows():
        raise HostUnsupportedError(f"Non-Windows host ({platform.name})")

    interpreter = platform.find_script_interpreter(preferred)
    if not interpreter:
        raise HostUnsupportedError("No PowerShell interpreter found")
    return interpreter


def powershell_command(interpreter: str) -> CommandBuilder:
    """Command builder running a script file non-interactively"""
    def build(script_path: Path) -> List[str]:
        return [interpreter, '-NoProfile', '-NonInteractive',
                '-ExecutionPolicy', 'Bypass', '-File', str(script_path)]
    return build


class ExecutionBackend(ABC):
    """Common contract for live and simulated execution"""

    mode: ExecutionMode

    @abstractmethod
    async def execute(self, plan: Plan, on_output: Optional[OutputCallback] = None,
                      on_progress: Optional[ProgressCallback] = None,
                      cancel_event: Optional[asyncio.Event] = None) -> RunResult:
        """Run the plan, streaming events to the sinks, and return the terminal result"""
        pass


class LiveBackend(ExecutionBackend):
    """Runs the plan as a real script in one child process"""

    mode = ExecutionMode.LIVE

    def __init__(self, command_builder: CommandBuilder,
                 platform: Optional[PlatformInterface] = None,
                 temp_dir: Optional[Path] = None,
                 encoding: Optional[str] = None):
        self.command_builder = command_builder
        self.platform = platform or platform_manager.get_platform()
        self.temp_dir = temp_dir
        self.encoding = encoding or self.platform.console_encoding()

    async def execute(self, plan: Plan, on_output: Optional[OutputCallback] = None,
                      on_progress: Optional[ProgressCallback] = None,
                      cancel_event: Optional[asyncio.Event] = None) -> RunResult:
        reporter = ProgressReporter(on_progress)
        script_path: Optional[Path] = None
        process: Optional[asyncio.subprocess.Process] = None
        drain: Optional[asyncio.Future] = None

        try:
            script_path = self._write_script(plan)
            command = self.command_builder(script_path)
            logger.info(f"Running plan of {len(plan.steps)} operation(s) via {command[0]}")

            try:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    limit=STREAM_LIMIT,
                )
            except OSError as e:
                error = SpawnFailedError(command[0], str(e))
                logger.error(str(error))
                await emit(on_output, OutputEvent(f"FATAL ERROR: {error}", is_error=True))
                return RunResult.failed(str(error), ErrorKind.SPAWN_FAILED, mode=self.mode)

            drain = asyncio.ensure_future(self._drain(process, on_output, reporter))
            if await wait_or_cancelled(drain, cancel_event):
                logger.warning("Live run cancelled, terminating interpreter")
                await self._terminate(process)
                return RunResult.cancelled(mode=self.mode)

            returncode = drain.result()
            if returncode != 0:
                logger.error(f"Interpreter exited with code {returncode}")
                return RunResult.failed(f"Interpreter exited with code {returncode}",
                                        exit_code=returncode, mode=self.mode)

            await reporter.report(100.0)
            logger.info("Live run completed successfully")
            return RunResult.success(exit_code=returncode, mode=self.mode)

        except asyncio.CancelledError:
            logger.warning("Live run task cancelled")
            raise
        except Exception as e:
            logger.exception(f"Live run failed: {e}")
            return RunResult.failed(str(e), ErrorKind.UNEXPECTED, mode=self.mode)
        finally:
            if process is not None and process.returncode is None:
                await self._terminate(process)
            if drain is not None and not drain.done():
                drain.cancel()
            if script_path is not None:
                self._remove_script(script_path)

    def _write_script(self, plan: Plan) -> Path:
        """Persist the script to a private temp file"""
        fd, name = tempfile.mkstemp(prefix="orchestrator_", suffix=".ps1",
                                    dir=str(self.temp_dir) if self.temp_dir else None)
        # BOM so Windows PowerShell reads the file as UTF-8
        with os.fdopen(fd, 'w', encoding='utf-8-sig', newline='') as f:
            f.write(render_script(plan))
        return Path(name)

    def _remove_script(self, script_path: Path):
        try:
            script_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove script {script_path}: {e}")

    async def _drain(self, process: asyncio.subprocess.Process,
                     on_output: Optional[OutputCallback], reporter: ProgressReporter) -> int:
        """Forward both output streams until EOF, then wait for exit"""
        await asyncio.gather(
            self._pump(process.stdout, False, on_output, reporter),
            self._pump(process.stderr, True, on_output, reporter),
        )
        return await process.wait()

    async def _pump(self, stream: Optional[asyncio.StreamReader], is_error: bool,
                    on_output: Optional[OutputCallback], reporter: ProgressReporter):
        if stream is None:
            return
        while True:
            raw = await stream.readline()
            if not raw:
                break
            text = raw.decode(self.encoding, errors='replace').rstrip('\r\n')
            if text and not is_error:
                marker = parse_step_marker(text)
                if marker:
                    index, total = marker
                    await reporter.report((index - 1) / total * 100.0)
            await emit(on_output, OutputEvent(text, is_error=is_error))

    async def _terminate(self, process: asyncio.subprocess.Process):
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.platform.terminate_process_tree, process.pid)
        await process.wait()


class SimulatedBackend(ExecutionBackend):
    """Replays a plan as synthetic, timed output"""

    mode = ExecutionMode.SIMULATED

    SEPARATOR = "-" * 60

    def __init__(self, line_delay: Optional[float] = None, pause_delay: Optional[float] = None,
                 reason: Optional[str] = None, settings: Optional[Dict[str, Any]] = None):
        settings = settings if settings is not None else config.section('execution')
        self.line_delay = line_delay if line_delay is not None else settings.get('simulation_line_delay', 0.2)
        self.pause_delay = pause_delay if pause_delay is not None else settings.get('simulation_pause_delay', 0.5)
        self.reason = reason

    def header(self) -> List[str]:
        if self.reason:
            first = f"Environment detected: {self.reason}. Running in Simulation Mode."
        else:
            first = "Running in Simulation Mode."
        return [first, self.SEPARATOR]

    @staticmethod
    def describe(operation: Operation) -> List[str]:
        """Trace lines for one operation, derived from its label only"""
        if operation.is_banner:
            return [f"> {operation.human_label}"]
        return [f"> {operation.human_label}...", f"> {operation.human_label}: done"]

    def transcript(self, plan: Plan) -> List[str]:
        """Every line a full replay of ``plan`` emits, in order"""
        lines = self.header()
        for operation in plan:
            lines.extend(self.describe(operation))
        return lines

    async def execute(self, plan: Plan, on_output: Optional[OutputCallback] = None,
                      on_progress: Optional[ProgressCallback] = None,
                      cancel_event: Optional[asyncio.Event] = None) -> RunResult:
        reporter = ProgressReporter(on_progress)
        logger.info(f"Simulating plan of {len(plan.steps)} operation(s)")

        for line in self.header():
            await emit(on_output, OutputEvent(line))

        total = len(plan)
        for index, operation in enumerate(plan, start=1):
            for line in self.describe(operation):
                await emit(on_output, OutputEvent(line))
                if await sleep_or_cancelled(self.line_delay, cancel_event):
                    return RunResult.cancelled(mode=self.mode)
            if operation.pause and await sleep_or_cancelled(self.pause_delay, cancel_event):
                return RunResult.cancelled(mode=self.mode)
            await reporter.report(index / total * 100.0)

        logger.info("Simulation completed")
        return RunResult.success(mode=self.mode)


def select_backend(capability: HostCapability,
                   platform: Optional[PlatformInterface] = None,
                   settings: Optional[Dict[str, Any]] = None,
                   command_builder: Optional[CommandBuilder] = None) -> ExecutionBackend:
    """Pick the backend matching a probe result"""
    if capability.live_supported:
        builder = command_builder or powershell_command(capability.interpreter)
        return LiveBackend(builder, platform=platform)

    logger.info(f"Live execution unavailable: {capability.reason}; falling back to simulation")
    return SimulatedBackend(reason=capability.reason, settings=settings)

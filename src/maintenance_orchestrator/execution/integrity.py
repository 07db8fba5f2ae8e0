#!/usr/bin/env python3
"""
System integrity repair for Maintenance Orchestrator
Runs the system file checker and DISM one after the other, reporting their
output as status lines and an estimated progress bar split across both tools
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..core.config import config
from ..core.errors import SpawnFailedError
from ..core.platform_compat import PlatformInterface, platform_manager
from .estimator import ProgressEstimator
from .events import (
    ProgressCallback,
    ProgressReporter,
    StatusCallback,
    emit,
    wait_or_cancelled,
)
from .models import ErrorKind, ExecutionMode, ProgressEvent, RunResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepairPhase:
    """One external repair tool and its slice of the progress bar"""
    name: str
    command: str
    lower_bound: float
    span: float


DEFAULT_PHASES: Tuple[RepairPhase, ...] = (
    RepairPhase("System File Checker", "sfc /scannow", 0.0, 50.0),
    RepairPhase("DISM RestoreHealth", "DISM /Online /Cleanup-Image /RestoreHealth", 50.0, 50.0),
)


class IntegrityRepairService:
    """Sequential repair phases with estimated progress"""

    def __init__(self, platform: Optional[PlatformInterface] = None,
                 estimator: Optional[ProgressEstimator] = None,
                 phases: Tuple[RepairPhase, ...] = DEFAULT_PHASES,
                 live: Optional[bool] = None,
                 settings: Optional[Dict[str, Any]] = None,
                 encoding: Optional[str] = None):
        self.platform = platform or platform_manager.get_platform()
        self.estimator = estimator or ProgressEstimator()
        self.phases = phases
        self.live = self.platform.is_windows() if live is None else live
        settings = settings if settings is not None else config.section('integrity')
        self.simulated_phase_seconds = settings.get('simulated_phase_seconds', 3.0)
        self.encoding = encoding or self.platform.console_encoding()

    @property
    def mode(self) -> ExecutionMode:
        return ExecutionMode.LIVE if self.live else ExecutionMode.SIMULATED

    async def repair(self, on_status: Optional[StatusCallback] = None,
                     on_progress: Optional[ProgressCallback] = None,
                     cancel_event: Optional[asyncio.Event] = None) -> RunResult:
        """Run every phase; a failing phase does not stop the next one"""
        reporter = ProgressReporter(on_progress)

        async def report(event: ProgressEvent):
            await reporter.report(event.percent)

        failures: List[str] = []
        for phase in self.phases:
            await emit(on_status, f"Starting {phase.name}...")
            logger.info(f"Starting repair phase '{phase.name}' ({self.mode.value})")

            try:
                if self.live:
                    returncode = await self._run_live(phase, on_status, report, cancel_event)
                else:
                    returncode = await self._run_simulated(phase, on_status, report, cancel_event)
            except SpawnFailedError as e:
                logger.error(str(e))
                await emit(on_status, f"{phase.name} Error: {e.reason}")
                return RunResult.failed(str(e), ErrorKind.SPAWN_FAILED, mode=self.mode)

            if returncode is None:
                await emit(on_status, f"{phase.name} cancelled.")
                return RunResult.cancelled(mode=self.mode)

            if returncode != 0:
                logger.warning(f"Repair phase '{phase.name}' exited with code {returncode}")
                await emit(on_status, f"{phase.name} finished with exit code {returncode}.")
                failures.append(f"{phase.name} exited with code {returncode}")
            else:
                await emit(on_status, f"{phase.name} completed.")

        if failures:
            return RunResult.failed("; ".join(failures), mode=self.mode)
        return RunResult.success(mode=self.mode)

    async def _run_live(self, phase: RepairPhase, on_status: Optional[StatusCallback],
                        on_progress: ProgressCallback,
                        cancel_event: Optional[asyncio.Event]) -> Optional[int]:
        """Run the phase's tool; None means cancelled"""
        command = self.platform.shell_command(phase.command)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnFailedError(phase.command, str(e)) from e

        async def forward(stream: Optional[asyncio.StreamReader], prefix: str):
            if stream is None:
                return
            while True:
                raw = await stream.readline()
                if not raw:
                    break
                # sfc writes UTF-16 to redirected pipes
                text = raw.decode(self.encoding, errors='replace').replace('\x00', '').strip()
                if text:
                    await emit(on_status, f"{prefix}{text}")

        work = asyncio.ensure_future(asyncio.gather(
            forward(process.stdout, f"{phase.name}: "),
            forward(process.stderr, f"{phase.name} Error: "),
            process.wait(),
        ))
        estimate = asyncio.ensure_future(self.estimator.estimate(
            lambda: process.returncode is None,
            phase.lower_bound, phase.span, on_progress, cancel_event,
        ))

        try:
            if await wait_or_cancelled(work, cancel_event):
                return None
            if not await estimate:
                return None
            return process.returncode
        finally:
            if process.returncode is None:
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, self.platform.terminate_process_tree, process.pid)
                await process.wait()
            for task in (work, estimate):
                if not task.done():
                    task.cancel()

    async def _run_simulated(self, phase: RepairPhase, on_status: Optional[StatusCallback],
                             on_progress: ProgressCallback,
                             cancel_event: Optional[asyncio.Event]) -> Optional[int]:
        """Stand in for the tool with a fixed-duration pseudo process"""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.simulated_phase_seconds

        await emit(on_status, f"{phase.name}: Simulation Mode, '{phase.command}' is not run on this host.")
        finished = await self.estimator.estimate(
            lambda: loop.time() < deadline,
            phase.lower_bound, phase.span, on_progress, cancel_event,
        )
        return 0 if finished else None

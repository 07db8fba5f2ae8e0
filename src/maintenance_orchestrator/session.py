#!/usr/bin/env python3
"""
Orchestration session for Maintenance Orchestrator
Wires the plan builder, elevation guard, execution backends, integrity repair
and installer pipeline together, allowing exactly one active run at a time
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Union
import logging

from .core.config import config
from .core.errors import RunInProgressError
from .core.platform_compat import PlatformInterface, platform_manager
from .execution.backends import CommandBuilder, probe_host, select_backend
from .execution.elevation import ElevationGuard, GuardResult
from .execution.events import EventStream, OutputCallback, ProgressCallback, StatusCallback
from .execution.integrity import IntegrityRepairService
from .execution.models import ErrorKind, ExecutionMode, OutputEvent, ProgressEvent, RunResult
from .installer.catalog import ProgramCatalog
from .installer.pipeline import InstallerPipeline
from .planning.plan_builder import Configuration, PlanBuilder

logger = logging.getLogger(__name__)

StreamItem = Union[OutputEvent, ProgressEvent, RunResult]


class OrchestrationSession:
    """Single-run-at-a-time facade over every orchestrated flow"""

    def __init__(self, platform: Optional[PlatformInterface] = None,
                 guard: Optional[ElevationGuard] = None,
                 plan_builder: Optional[PlanBuilder] = None,
                 programs: Optional[ProgramCatalog] = None,
                 integrity: Optional[IntegrityRepairService] = None,
                 installer: Optional[InstallerPipeline] = None,
                 settings: Optional[Dict[str, Any]] = None,
                 command_builder: Optional[CommandBuilder] = None):
        self.platform = platform or platform_manager.get_platform()
        self.guard = guard or ElevationGuard(self.platform)
        self.plan_builder = plan_builder or PlanBuilder()
        self.programs = programs or ProgramCatalog.load(config.get('installer.catalog_file'))
        self.integrity = integrity or IntegrityRepairService(self.platform)
        self.installer = installer or InstallerPipeline(self.platform)
        self.settings = settings if settings is not None else config.section('execution')
        self.command_builder = command_builder
        self.stream_buffer = config.get('session.stream_buffer', 256)

        self.last_guard_result: Optional[GuardResult] = None
        self._active: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self._active is not None

    @asynccontextmanager
    async def _exclusive(self, action: str):
        """Claim the session for one run; a second claim is rejected, not queued"""
        if self._active is not None:
            raise RunInProgressError(f"Cannot start {action}: {self._active} is still running")
        self._active = action
        try:
            yield
        finally:
            self._active = None

    async def _authorize(self, mode: ExecutionMode) -> GuardResult:
        # relaunch confirmation blocks for a short grace period
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self.guard.check_and_maybe_relaunch, mode)
        self.last_guard_result = result
        return result

    async def run(self, configuration: Configuration,
                  on_output: Optional[OutputCallback] = None,
                  on_progress: Optional[ProgressCallback] = None,
                  cancel_event: Optional[asyncio.Event] = None,
                  force_simulation: bool = False) -> RunResult:
        """Build, authorize and execute the plan for ``configuration``"""
        async with self._exclusive("run"):
            try:
                plan = self.plan_builder.build(configuration)
                capability = probe_host(self.platform, self.settings, force_simulation)

                guard_result = await self._authorize(capability.mode)
                if not guard_result.authorized:
                    logger.info("Run aborted before execution: elevation required")
                    return RunResult.elevation_required()

                backend = select_backend(capability, self.platform, self.settings, self.command_builder)
                logger.info(f"Starting {backend.mode.value} run with {len(plan.steps)} operation(s)")
                result = await backend.execute(plan, on_output, on_progress, cancel_event)
                logger.info(f"Run finished: {result.outcome.value}")
                return result

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected error during run: {e}")
                return RunResult.failed(str(e), ErrorKind.UNEXPECTED)

    async def repair(self, on_status: Optional[StatusCallback] = None,
                     on_progress: Optional[ProgressCallback] = None,
                     cancel_event: Optional[asyncio.Event] = None) -> RunResult:
        """Run the system file checker and DISM repair phases"""
        async with self._exclusive("repair"):
            try:
                guard_result = await self._authorize(self.integrity.mode)
                if not guard_result.authorized:
                    logger.info("Repair aborted before execution: elevation required")
                    return RunResult.elevation_required()

                result = await self.integrity.repair(on_status, on_progress, cancel_event)
                logger.info(f"Repair finished: {result.outcome.value}")
                return result

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected error during repair: {e}")
                return RunResult.failed(str(e), ErrorKind.UNEXPECTED)

    async def install(self, program_name: str,
                      on_status: Optional[StatusCallback] = None,
                      cancel_event: Optional[asyncio.Event] = None) -> RunResult:
        """Download and install a catalog program; unknown names raise KeyError"""
        program = self.programs.get(program_name)

        async with self._exclusive(f"install of {program.name}"):
            try:
                return await self.installer.install(program, on_status, cancel_event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected error installing {program.name}: {e}")
                return RunResult.failed(str(e), ErrorKind.UNEXPECTED)

    async def stream(self, configuration: Configuration,
                     max_buffer: Optional[int] = None,
                     cancel_event: Optional[asyncio.Event] = None,
                     force_simulation: bool = False) -> AsyncIterator[StreamItem]:
        """Iterate a run's events, ending with its RunResult.

        The run pauses while the buffer is full. Closing the iterator early
        cancels the run.
        """
        events = EventStream(max_buffer or self.stream_buffer)

        async def produce():
            try:
                result = await self.run(configuration, events.put, events.put,
                                        cancel_event, force_simulation)
            except RunInProgressError as e:
                await events.finish(e)
            else:
                await events.finish(result)

        producer = asyncio.ensure_future(produce())
        try:
            async for item in events:
                yield item
        finally:
            if not producer.done():
                producer.cancel()
                try:
                    await producer
                except asyncio.CancelledError:
                    pass

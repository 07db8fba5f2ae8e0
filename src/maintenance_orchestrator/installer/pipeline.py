#!/usr/bin/env python3
"""
Installer pipeline for Maintenance Orchestrator
Downloads an installer binary, runs it silently (elevated when needed),
and always removes the downloaded file afterwards
"""

import asyncio
import re
import shlex
import threading
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import logging

import requests

from ..core.config import config
from ..core.errors import NetworkFailedError
from ..core.platform_compat import PlatformInterface, platform_manager
from ..execution.events import StatusCallback, emit, wait_or_cancelled
from ..execution.models import ErrorKind, RunResult
from .catalog import InstallableProgram

logger = logging.getLogger(__name__)


def _safe_name(name: str) -> str:
    return re.sub(r'[^A-Za-z0-9._-]+', '', name) or "program"


class InstallerPipeline:
    """Download-then-install flow for one catalog program at a time"""

    def __init__(self, platform: Optional[PlatformInterface] = None,
                 http_session: Optional[requests.Session] = None,
                 settings: Optional[Dict[str, Any]] = None,
                 temp_dir: Optional[Path] = None):
        self.platform = platform or platform_manager.get_platform()
        settings = settings if settings is not None else config.section('installer')
        self.timeout = settings.get('download_timeout', 300)
        self.chunk_size = settings.get('chunk_size', 8192)
        self.temp_dir = Path(temp_dir) if temp_dir else self.platform.temp_dir()

        self.session = http_session or requests.Session()
        if http_session is None:
            self.session.headers.update({
                'User-Agent': settings.get('user_agent', 'Maintenance-Orchestrator/1.0'),
            })

    def installer_path(self, program: InstallableProgram) -> Path:
        """Unique download location for one install attempt"""
        return self.temp_dir / f"{_safe_name(program.name)}_{uuid.uuid4().hex}.exe"

    async def install(self, program: InstallableProgram,
                      on_status: Optional[StatusCallback] = None,
                      cancel_event: Optional[asyncio.Event] = None) -> RunResult:
        """Download and silently install ``program``"""
        installer_path = self.installer_path(program)
        process: Optional[asyncio.subprocess.Process] = None

        try:
            await emit(on_status, f"Downloading {program.name}...")
            logger.info(f"Downloading {program.name} from {program.download_url}")

            try:
                completed = await self._download(program, installer_path, cancel_event)
            except NetworkFailedError as e:
                return await self._fail(program, on_status, e.reason, ErrorKind.NETWORK_FAILED)

            if not completed:
                logger.info(f"Download of {program.name} cancelled")
                return RunResult.cancelled()

            await emit(on_status, f"Installing {program.name}...")
            command = self._install_command(installer_path, program)
            logger.info(f"Running installer for {program.name}")
            try:
                process = await self._spawn(command)
            except OSError as e:
                return await self._fail(program, on_status, f"Could not start installer: {e}",
                                        ErrorKind.SPAWN_FAILED)

            waiter = asyncio.ensure_future(process.wait())
            if await wait_or_cancelled(waiter, cancel_event):
                logger.warning(f"Installation of {program.name} cancelled")
                return RunResult.cancelled()

            returncode = waiter.result()
            if returncode != 0:
                return await self._fail(program, on_status, f"Installer exited with code {returncode}",
                                        exit_code=returncode)

            await emit(on_status, f"Installed {program.name} successfully.")
            logger.info(f"{program.name} installed")
            return RunResult.success(exit_code=returncode)

        except asyncio.CancelledError:
            logger.warning(f"Installation of {program.name} interrupted")
            raise
        except Exception as e:
            logger.exception(f"Installation of {program.name} failed: {e}")
            return await self._fail(program, on_status, str(e), ErrorKind.UNEXPECTED)
        finally:
            if process is not None and process.returncode is None:
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, self.platform.terminate_process_tree, process.pid)
                await process.wait()
            self._cleanup(installer_path)

    async def _download(self, program: InstallableProgram, installer_path: Path,
                        cancel_event: Optional[asyncio.Event]) -> bool:
        """Run the blocking fetch in a worker thread.

        If the calling task is cancelled the worker is told to stop and is
        waited for, so no thread is still writing ``installer_path`` when the
        caller removes it.
        """
        stop = threading.Event()

        def should_stop() -> bool:
            return stop.is_set() or (cancel_event is not None and cancel_event.is_set())

        loop = asyncio.get_running_loop()
        download = loop.run_in_executor(None, self._fetch, program.download_url,
                                        installer_path, should_stop)
        try:
            return await asyncio.shield(download)
        except asyncio.CancelledError:
            stop.set()
            await asyncio.wait([download])
            raise

    def _fetch(self, url: str, destination: Path, should_stop: Callable[[], bool]) -> bool:
        """Stream ``url`` into ``destination``; runs in a worker thread.

        Returns False if stopped early, after removing the partial file.
        Nothing is written unless the response status is 2xx.
        """
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                if not 200 <= response.status_code < 300:
                    raise NetworkFailedError(url, f"HTTP {response.status_code}", response.status_code)
                if should_stop():
                    return False

                with open(destination, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if should_stop():
                            break
                        if chunk:
                            f.write(chunk)
                    else:
                        return True
        except requests.RequestException as e:
            raise NetworkFailedError(url, str(e)) from e

        self._cleanup(destination)
        return False

    def _install_command(self, installer_path: Path, program: InstallableProgram) -> List[str]:
        command = [str(installer_path)] + shlex.split(program.silent_install_args)
        if self.platform.is_elevated():
            return command
        return self.platform.elevated_command(command)

    async def _spawn(self, command: List[str]) -> asyncio.subprocess.Process:
        return await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )

    async def _fail(self, program: InstallableProgram, on_status: Optional[StatusCallback],
                    reason: str, error_kind: Optional[ErrorKind] = None,
                    exit_code: Optional[int] = None) -> RunResult:
        logger.error(f"Failed to install {program.name}: {reason}")
        await emit(on_status, f"Failed to install {program.name}: {reason}")
        return RunResult.failed(reason, error_kind, exit_code=exit_code)

    def _cleanup(self, installer_path: Path):
        """Best-effort removal of the downloaded installer"""
        try:
            installer_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove installer {installer_path}: {e}")

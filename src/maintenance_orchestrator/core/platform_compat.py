#!/usr/bin/env python3
"""
Cross-platform compatibility layer for Maintenance Orchestrator
Provides a unified interface for privilege checks, elevated relaunch,
interpreter discovery, and process control on Windows and Linux
"""

import os
import sys
import platform
import subprocess
import shutil
import tempfile
import getpass
import locale
import time
from pathlib import Path
from typing import List, Optional, Sequence
from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging

import psutil

# Candidate interpreters for the generated script, in preference order
POWERSHELL_CANDIDATES = ('powershell', 'powershell.exe', 'pwsh', 'pwsh.exe')

# ShellExecuteW returns a value greater than 32 on success
SHELL_EXECUTE_OK = 32


@dataclass
class SystemInfo:
    """Cross-platform system information"""
    platform: str
    platform_version: str
    architecture: str
    hostname: str
    username: str
    temp_dir: Path


def _ps_quote(value: str) -> str:
    """Quote a string as a PowerShell single-quoted literal"""
    return "'" + value.replace("'", "''") + "'"


class PlatformInterface(ABC):
    """Abstract interface for platform-specific operations"""

    name = "unknown"

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{type(self).__name__}")

    @abstractmethod
    def get_system_info(self) -> SystemInfo:
        """Get system information"""
        pass

    @abstractmethod
    def is_elevated(self) -> bool:
        """Check whether the current process holds administrator/root rights"""
        pass

    @abstractmethod
    def relaunch_elevated(self, argv: Optional[Sequence[str]] = None) -> bool:
        """Ask the host to relaunch this program elevated.

        Returns True only once the host accepted the request and the
        elevated instance was started.
        """
        pass

    @abstractmethod
    def elevated_command(self, command: Sequence[str]) -> List[str]:
        """Wrap a command so that it runs with elevated rights"""
        pass

    @abstractmethod
    def shell_command(self, command_line: str) -> List[str]:
        """Build an argv that runs a command line through the host shell"""
        pass

    def is_windows(self) -> bool:
        return self.name == "windows"

    def find_script_interpreter(self, preferred: Optional[str] = None) -> Optional[str]:
        """Locate a PowerShell interpreter on PATH"""
        candidates = (preferred,) if preferred else POWERSHELL_CANDIDATES
        for candidate in candidates:
            found = shutil.which(candidate)
            if found:
                return found
        return None

    def temp_dir(self) -> Path:
        return Path(tempfile.gettempdir())

    def console_encoding(self) -> str:
        """Encoding used to decode output captured from child processes"""
        return locale.getpreferredencoding(False)

    def terminate_process_tree(self, pid: int, timeout: float = 5.0) -> int:
        """Terminate a process and all of its descendants.

        Returns the number of processes signalled.
        """
        try:
            parent = psutil.Process(pid)
        except psutil.NoSuchProcess:
            return 0

        try:
            procs = parent.children(recursive=True)
        except psutil.Error:
            procs = []
        procs.append(parent)

        signalled = 0
        for proc in procs:
            try:
                proc.terminate()
                signalled += 1
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied as e:
                self.logger.warning(f"Cannot terminate process {proc.pid}: {e}")

        _, alive = psutil.wait_procs(procs, timeout=timeout)
        for proc in alive:
            try:
                proc.kill()
            except psutil.Error as e:
                self.logger.warning(f"Cannot kill process {proc.pid}: {e}")

        return signalled

    def _current_argv(self, argv: Optional[Sequence[str]]) -> List[str]:
        return list(argv) if argv is not None else list(sys.argv)


class WindowsPlatform(PlatformInterface):
    """Windows-specific implementation"""

    name = "windows"

    def get_system_info(self) -> SystemInfo:
        """Get Windows system information"""
        return SystemInfo(
            platform="Windows",
            platform_version=platform.platform(),
            architecture=platform.machine(),
            hostname=platform.node(),
            username=getpass.getuser(),
            temp_dir=self.temp_dir(),
        )

    def is_elevated(self) -> bool:
        """Check if running as administrator on Windows"""
        try:
            import ctypes
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (ImportError, AttributeError, OSError) as e:
            self.logger.warning(f"Could not query administrator status: {e}")
            return False

    def relaunch_elevated(self, argv: Optional[Sequence[str]] = None) -> bool:
        """Relaunch the current program through the UAC 'runas' verb"""
        params = subprocess.list2cmdline(self._current_argv(argv))
        try:
            import ctypes
            result = ctypes.windll.shell32.ShellExecuteW(
                None, "runas", sys.executable, params, None, 1
            )
        except (ImportError, AttributeError, OSError) as e:
            self.logger.error(f"Elevated relaunch failed: {e}")
            return False

        if result <= SHELL_EXECUTE_OK:
            self.logger.info(f"Elevated relaunch was refused or cancelled (code {result})")
            return False
        return True

    def elevated_command(self, command: Sequence[str]) -> List[str]:
        """Run a command through Start-Process -Verb RunAs and propagate its exit code"""
        executable, *args = command
        script = f"$p = Start-Process -FilePath {_ps_quote(executable)}"
        if args:
            script += f" -ArgumentList {_ps_quote(subprocess.list2cmdline(args))}"
        script += " -Verb RunAs -Wait -PassThru; exit $p.ExitCode"

        interpreter = self.find_script_interpreter() or 'powershell'
        return [interpreter, '-NoProfile', '-NonInteractive', '-Command', script]

    def shell_command(self, command_line: str) -> List[str]:
        return [os.environ.get('COMSPEC', 'cmd.exe'), '/c', command_line]


class LinuxPlatform(PlatformInterface):
    """Linux (and generic POSIX) implementation"""

    name = "linux"

    # How long a relaunched sudo child must survive to count as started
    RELAUNCH_GRACE_SECONDS = 2.0

    def get_system_info(self) -> SystemInfo:
        """Get Linux system information"""
        return SystemInfo(
            platform=platform.system() or "Linux",
            platform_version=platform.release(),
            architecture=platform.machine(),
            hostname=platform.node(),
            username=getpass.getuser(),
            temp_dir=self.temp_dir(),
        )

    def is_elevated(self) -> bool:
        geteuid = getattr(os, "geteuid", None)
        return bool(callable(geteuid) and geteuid() == 0)

    def relaunch_elevated(self, argv: Optional[Sequence[str]] = None) -> bool:
        """Re-exec the current program through sudo"""
        sudo = shutil.which('sudo')
        if not sudo:
            self.logger.warning("sudo not available, cannot relaunch elevated")
            return False

        command = [sudo, sys.executable] + self._current_argv(argv)
        try:
            proc = subprocess.Popen(command)
        except OSError as e:
            self.logger.error(f"Elevated relaunch failed: {e}")
            return False

        deadline = time.monotonic() + self.RELAUNCH_GRACE_SECONDS
        while time.monotonic() < deadline:
            returncode = proc.poll()
            if returncode is not None:
                if returncode != 0:
                    self.logger.info(f"Elevated relaunch was refused (exit code {returncode})")
                return returncode == 0
            time.sleep(0.1)
        return True

    def elevated_command(self, command: Sequence[str]) -> List[str]:
        if self.is_elevated():
            return list(command)
        return ['sudo'] + list(command)

    def shell_command(self, command_line: str) -> List[str]:
        return ['/bin/sh', '-c', command_line]


# Platform factory
class PlatformManager:
    """Factory for creating platform-specific implementations"""

    _instance = None
    _platform = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_platform(self) -> PlatformInterface:
        """Get the appropriate platform implementation"""
        if self._platform is None:
            if platform.system().lower() == 'windows':
                self._platform = WindowsPlatform()
            else:
                # Default to Linux for Unix-like systems
                self._platform = LinuxPlatform()

        return self._platform

    def is_windows(self) -> bool:
        """Check if running on Windows"""
        return platform.system().lower() == 'windows'

    def get_system_info(self) -> SystemInfo:
        """Get cross-platform system information"""
        return self.get_platform().get_system_info()


# Global platform manager instance
platform_manager = PlatformManager()

"""
Maintenance Orchestrator - Core Components

Configuration management, the error taxonomy, and the host compatibility layer.
"""

from .config import config, Config
from .errors import (
    OrchestratorError,
    SpawnFailedError,
    NetworkFailedError,
    HostUnsupportedError,
    RunInProgressError,
)
from .platform_compat import platform_manager, PlatformInterface, WindowsPlatform, LinuxPlatform

__all__ = [
    'config',
    'Config',
    'OrchestratorError',
    'SpawnFailedError',
    'NetworkFailedError',
    'HostUnsupportedError',
    'RunInProgressError',
    'platform_manager',
    'PlatformInterface',
    'WindowsPlatform',
    'LinuxPlatform',
]

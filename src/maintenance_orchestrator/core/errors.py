"""
Exception taxonomy for Maintenance Orchestrator

Errors raised inside a run are converted into a terminal RunResult by the
component that owns the run; only caller contract violations escape.
"""

from typing import Optional


class OrchestratorError(Exception):
    """Base class for orchestrator errors"""


class SpawnFailedError(OrchestratorError):
    """An interpreter or installer process could not be started"""

    def __init__(self, command: str, reason: str):
        super().__init__(f"Failed to start {command}: {reason}")
        self.command = command
        self.reason = reason


class NetworkFailedError(OrchestratorError):
    """A download did not complete with a success response"""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"Download of {url} failed: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class HostUnsupportedError(OrchestratorError):
    """The host cannot run the plan's command dialect"""


class RunInProgressError(OrchestratorError):
    """A second run was started while another one is still active"""

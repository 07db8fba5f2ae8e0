"""
Run-level data types shared by the execution backends, the estimator,
the integrity repair flow and the installer pipeline
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ExecutionMode(Enum):
    """How a plan is carried out; fixed for the duration of a run"""
    LIVE = "live"
    SIMULATED = "simulated"


class RunOutcome(Enum):
    """Terminal state of a run"""
    SUCCESS = "success"
    FAILED = "failed"
    ELEVATION_REQUIRED = "elevation_required"
    CANCELLED = "cancelled"


class ErrorKind(Enum):
    """Why a run failed"""
    SPAWN_FAILED = "spawn_failed"
    NETWORK_FAILED = "network_failed"
    HOST_UNSUPPORTED = "host_unsupported"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class OutputEvent:
    """One line of output from a run"""
    text: str
    is_error: bool = False
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ProgressEvent:
    """Overall progress of a run, 0-100"""
    percent: float

    def __post_init__(self):
        if not 0.0 <= self.percent <= 100.0:
            raise ValueError(f"percent out of range: {self.percent}")


@dataclass(frozen=True)
class RunResult:
    """Terminal result of a run"""
    outcome: RunOutcome
    reason: Optional[str] = None
    exit_code: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    mode: Optional[ExecutionMode] = None

    @classmethod
    def success(cls, exit_code: Optional[int] = None,
                mode: Optional[ExecutionMode] = None) -> "RunResult":
        return cls(RunOutcome.SUCCESS, exit_code=exit_code, mode=mode)

    @classmethod
    def failed(cls, reason: str, error_kind: Optional[ErrorKind] = None,
               exit_code: Optional[int] = None,
               mode: Optional[ExecutionMode] = None) -> "RunResult":
        return cls(RunOutcome.FAILED, reason=reason, exit_code=exit_code,
                   error_kind=error_kind, mode=mode)

    @classmethod
    def cancelled(cls, mode: Optional[ExecutionMode] = None) -> "RunResult":
        return cls(RunOutcome.CANCELLED, reason="Run was cancelled", mode=mode)

    @classmethod
    def elevation_required(cls) -> "RunResult":
        return cls(RunOutcome.ELEVATION_REQUIRED,
                   reason="Administrator privileges are required")

    @property
    def succeeded(self) -> bool:
        return self.outcome is RunOutcome.SUCCESS

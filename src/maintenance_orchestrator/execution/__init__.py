"""
Maintenance Orchestrator - Execution Components

Live and simulated backends, the elevation guard, the progress estimator
and the integrity repair flow.
"""

from .models import (
    ExecutionMode,
    RunOutcome,
    ErrorKind,
    OutputEvent,
    ProgressEvent,
    RunResult,
)
from .events import EventStream, ProgressReporter
from .backends import (
    ExecutionBackend,
    LiveBackend,
    SimulatedBackend,
    HostCapability,
    probe_host,
    select_backend,
)
from .elevation import ElevationGuard, GuardDecision, GuardResult
from .estimator import ProgressEstimator
from .integrity import IntegrityRepairService, RepairPhase

__all__ = [
    'ExecutionMode',
    'RunOutcome',
    'ErrorKind',
    'OutputEvent',
    'ProgressEvent',
    'RunResult',
    'EventStream',
    'ProgressReporter',
    'ExecutionBackend',
    'LiveBackend',
    'SimulatedBackend',
    'HostCapability',
    'probe_host',
    'select_backend',
    'ElevationGuard',
    'GuardDecision',
    'GuardResult',
    'ProgressEstimator',
    'IntegrityRepairService',
    'RepairPhase',
]

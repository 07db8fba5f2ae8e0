"""
Maintenance Orchestrator

Turns a set of chosen maintenance options into an ordered plan, runs it live
or as a simulation, estimates progress for silent repair tools, and installs
third-party programs with guaranteed cleanup.
"""

__version__ = "1.0.0"

from .core.config import config
from .execution.models import ExecutionMode, OutputEvent, ProgressEvent, RunOutcome, RunResult
from .planning.plan_builder import Operation, Plan, PlanBuilder, build
from .session import OrchestrationSession

__all__ = [
    'config',
    'ExecutionMode',
    'OutputEvent',
    'ProgressEvent',
    'RunOutcome',
    'RunResult',
    'Operation',
    'Plan',
    'PlanBuilder',
    'build',
    'OrchestrationSession',
]

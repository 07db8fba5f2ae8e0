"""
Maintenance Orchestrator - Planning

Static operation catalog, the plan builder, and the script artifact format.
"""

from .catalog import (
    OperationCatalog,
    OperationCategory,
    OperationOption,
    default_catalog,
)
from .plan_builder import Configuration, Operation, Plan, PlanBuilder, build
from .script import render_script, parse_step_marker

__all__ = [
    'OperationCatalog',
    'OperationCategory',
    'OperationOption',
    'default_catalog',
    'Configuration',
    'Operation',
    'Plan',
    'PlanBuilder',
    'build',
    'render_script',
    'parse_step_marker',
]

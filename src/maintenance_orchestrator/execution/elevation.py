#!/usr/bin/env python3
"""
Elevation guard for Maintenance Orchestrator
Checks for administrator/root rights before a live run and redirects to an
elevated relaunch instead of running a partial plan
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
import logging

from ..core.platform_compat import PlatformInterface, platform_manager
from .models import ExecutionMode

logger = logging.getLogger(__name__)


class GuardDecision(Enum):
    """Outcome of an elevation check"""
    AUTHORIZED = "authorized"
    RELAUNCH_REQUESTED = "relaunch_requested"


@dataclass(frozen=True)
class GuardResult:
    """Decision plus whether an elevated instance actually started.

    ``relaunch_confirmed`` is only meaningful for RELAUNCH_REQUESTED: when
    False the user or host refused the request and the caller should stay up
    and treat the attempt as a cancelled no-op.
    """
    decision: GuardDecision
    relaunch_confirmed: bool = False

    @property
    def authorized(self) -> bool:
        return self.decision is GuardDecision.AUTHORIZED


class ElevationGuard:
    """Authorizes live runs or requests an elevated relaunch"""

    def __init__(self, platform: Optional[PlatformInterface] = None,
                 relaunch_argv: Optional[Sequence[str]] = None):
        self.platform = platform or platform_manager.get_platform()
        self.relaunch_argv = relaunch_argv

    def check_and_maybe_relaunch(self, mode: ExecutionMode) -> GuardResult:
        """Authorize a run in ``mode`` or ask the host for an elevated relaunch"""
        if mode is ExecutionMode.SIMULATED:
            return GuardResult(GuardDecision.AUTHORIZED)

        if self.platform.is_elevated():
            logger.debug("Process is elevated, run authorized")
            return GuardResult(GuardDecision.AUTHORIZED)

        logger.info("Administrator privileges required, requesting elevated relaunch")
        confirmed = self.platform.relaunch_elevated(self.relaunch_argv)
        if confirmed:
            logger.info("Elevated instance started")
        else:
            logger.info("Elevated relaunch was not started")
        return GuardResult(GuardDecision.RELAUNCH_REQUESTED, relaunch_confirmed=confirmed)

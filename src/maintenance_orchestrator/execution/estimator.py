#!/usr/bin/env python3
"""
Progress estimator for external tools that report no percentage

This is a UX approximation, not a measurement: while the monitored process
runs, the estimate creeps towards a cap inside the caller's sub-range; when
the process exits the sub-range is reported as complete. Sequential phases
with adjacent sub-ranges read as one continuous 0-100 bar.
"""

import asyncio
from typing import Any, Callable, Dict, Optional
import logging

from ..core.config import config
from .events import ProgressCallback, emit, sleep_or_cancelled
from .models import ProgressEvent

logger = logging.getLogger(__name__)


class ProgressEstimator:
    """Synthesizes monotonic progress while a process is alive"""

    def __init__(self, interval: Optional[float] = None, increment: Optional[float] = None,
                 cap: Optional[float] = None, settings: Optional[Dict[str, Any]] = None):
        settings = settings if settings is not None else config.section('estimator')
        self.interval = interval if interval is not None else settings.get('interval', 0.5)
        self.increment = increment if increment is not None else settings.get('increment', 0.01)
        self.cap = cap if cap is not None else settings.get('cap', 0.9)

        if self.interval < 0:
            raise ValueError("interval must be non-negative")
        if not 0 < self.increment <= 1:
            raise ValueError("increment must be in (0, 1]")
        if not 0 < self.cap < 1:
            raise ValueError("cap must be in (0, 1)")

    async def estimate(self, is_alive: Callable[[], bool], lower_bound: float, span: float,
                       on_progress: Optional[ProgressCallback],
                       cancel_event: Optional[asyncio.Event] = None) -> bool:
        """Report progress in [lower_bound, lower_bound + span] until ``is_alive`` turns False.

        Returns True when the terminal event was emitted, False if cancelled.
        """
        if span < 0:
            raise ValueError(f"span must be non-negative, got {span}")
        if lower_bound < 0 or lower_bound + span > 100:
            raise ValueError(f"sub-range [{lower_bound}, {lower_bound + span}] is outside 0-100")

        upper_bound = lower_bound + span
        fraction = 0.0

        while is_alive():
            if await sleep_or_cancelled(self.interval, cancel_event):
                logger.debug(f"Estimate for [{lower_bound}, {upper_bound}] cancelled at {fraction:.2f}")
                return False
            if not is_alive():
                break
            if fraction < self.cap:
                fraction = min(fraction + self.increment, self.cap)
                await emit(on_progress, ProgressEvent(lower_bound + fraction * span))

        await emit(on_progress, ProgressEvent(upper_bound))
        return True

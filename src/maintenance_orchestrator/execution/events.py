"""
Event delivery for runs: callback dispatch, monotonic progress reporting
and a bounded event stream for consumers that prefer async iteration
"""

import asyncio
import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from .models import OutputEvent, ProgressEvent, RunResult

OutputCallback = Callable[[OutputEvent], Union[None, Awaitable[None]]]
ProgressCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]
StatusCallback = Callable[[str], Union[None, Awaitable[None]]]


async def emit(callback: Optional[Callable[[Any], Any]], event: Any) -> None:
    """Invoke a sink that may be a plain function or a coroutine function"""
    if callback is None:
        return
    result = callback(event)
    if inspect.isawaitable(result):
        await result


async def sleep_or_cancelled(delay: float, cancel_event: Optional[asyncio.Event]) -> bool:
    """Sleep for ``delay`` seconds; return True early if cancellation was requested"""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return False
    if cancel_event.is_set():
        return True
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True


async def wait_or_cancelled(task: "asyncio.Future[Any]", cancel_event: Optional[asyncio.Event]) -> bool:
    """Wait for ``task``; return True if cancellation was requested first.

    The task is left running when cancellation wins so the caller can shut
    down whatever it is waiting on.
    """
    if cancel_event is None:
        await task
        return False

    cancel_waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({task, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if not cancel_waiter.done():
            cancel_waiter.cancel()

    if task in done:
        task.result()
        return False
    return True


class ProgressReporter:
    """Forwards progress to a sink, never letting the value go backwards"""

    def __init__(self, on_progress: Optional[ProgressCallback]):
        self._on_progress = on_progress
        self._last: Optional[float] = None

    @property
    def last(self) -> Optional[float]:
        return self._last

    async def report(self, percent: float) -> None:
        percent = min(100.0, max(0.0, percent))
        if self._last is not None and percent <= self._last:
            return
        self._last = percent
        await emit(self._on_progress, ProgressEvent(percent))


class EventStream:
    """Bounded channel carrying the events of a single run.

    Producers await ``put`` so a slow consumer applies backpressure. The
    terminal item is either a RunResult or an exception to re-raise.
    """

    def __init__(self, max_buffer: int = 256):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=max_buffer)

    async def put(self, event: Union[OutputEvent, ProgressEvent]) -> None:
        await self._queue.put(event)

    async def finish(self, outcome: Union[RunResult, BaseException]) -> None:
        await self._queue.put(outcome)

    async def __aiter__(self) -> AsyncIterator[Union[OutputEvent, ProgressEvent, RunResult]]:
        while True:
            item = await self._queue.get()
            if isinstance(item, BaseException):
                raise item
            yield item
            if isinstance(item, RunResult):
                return

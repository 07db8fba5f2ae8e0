"""Tests for the progress estimator."""

import asyncio

import pytest

from maintenance_orchestrator.execution.estimator import ProgressEstimator


def alive_for(polls):
    """is_alive callable that turns False after ``polls`` checks."""
    state = {'remaining': polls}

    def is_alive():
        state['remaining'] -= 1
        return state['remaining'] >= 0
    return is_alive


class TestProgressEstimator:
    """Bounds, monotonicity and the exact terminal event."""

    @pytest.fixture
    def estimator(self):
        return ProgressEstimator(interval=0, increment=0.1, cap=0.9)

    @pytest.mark.asyncio
    async def test_stays_in_range_and_ends_exactly(self, estimator):
        events = []

        finished = await estimator.estimate(alive_for(12), 20.0, 30.0, lambda e: events.append(e.percent))

        assert finished
        assert events
        assert all(20.0 <= value <= 50.0 for value in events)
        assert events == sorted(events)
        assert events[-1] == 50.0

    @pytest.mark.asyncio
    async def test_estimate_is_capped_below_the_upper_bound(self, estimator):
        events = []

        await estimator.estimate(alive_for(60), 0.0, 100.0, lambda e: events.append(e.percent))

        assert max(events[:-1]) == pytest.approx(90.0)
        assert events[-1] == 100.0

    @pytest.mark.asyncio
    async def test_dead_process_emits_only_the_terminal_event(self, estimator):
        events = []

        await estimator.estimate(lambda: False, 10.0, 40.0, lambda e: events.append(e.percent))

        assert events == [50.0]

    @pytest.mark.asyncio
    async def test_sequential_phases_read_as_one_bar(self, estimator):
        phase_one = []
        phase_two = []

        await estimator.estimate(alive_for(6), 0.0, 50.0, lambda e: phase_one.append(e.percent))
        await estimator.estimate(alive_for(6), 50.0, 50.0, lambda e: phase_two.append(e.percent))

        assert phase_one[-1] == 50.0
        assert all(value < 50.0 for value in phase_one[:-1])
        assert all(value > 50.0 for value in phase_two)
        assert phase_two[-1] == 100.0

    @pytest.mark.asyncio
    async def test_async_sink_is_awaited(self, estimator):
        events = []

        async def on_progress(event):
            await asyncio.sleep(0)
            events.append(event.percent)

        await estimator.estimate(alive_for(2), 0.0, 10.0, on_progress)

        assert events[-1] == 10.0

    @pytest.mark.asyncio
    async def test_cancel_skips_terminal_event(self, estimator):
        events = []
        cancel_event = asyncio.Event()
        cancel_event.set()

        finished = await estimator.estimate(lambda: True, 0.0, 50.0,
                                            lambda e: events.append(e.percent), cancel_event)

        assert not finished
        assert events == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lower_bound, span", [(0.0, -1.0), (-5.0, 10.0), (60.0, 50.0)])
    async def test_rejects_invalid_ranges(self, estimator, lower_bound, span):
        with pytest.raises(ValueError):
            await estimator.estimate(lambda: False, lower_bound, span, None)

    @pytest.mark.parametrize("kwargs", [
        {'interval': -1},
        {'increment': 0},
        {'increment': 1.5},
        {'cap': 1.0},
        {'cap': 0},
    ])
    def test_rejects_invalid_settings(self, kwargs):
        settings = {'interval': 0.5, 'increment': 0.01, 'cap': 0.9}

        with pytest.raises(ValueError):
            ProgressEstimator(settings=settings, **kwargs)

    def test_defaults_come_from_settings(self):
        estimator = ProgressEstimator(settings={'interval': 0.25, 'increment': 0.05, 'cap': 0.8})

        assert estimator.interval == 0.25
        assert estimator.increment == 0.05
        assert estimator.cap == 0.8

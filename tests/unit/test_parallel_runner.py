"""Tests for ParallelRunner (real clock, short waits)."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import timedelta

import pytest

from planner.core.models.repetition import FiniteCount, WeeklyRepetition
from planner.core.models.task import ScheduledTask
from planner.core.scheduler.parallel import LaneOutcome, ParallelRunner
from planner.core.scheduler.service import Scheduler
from planner.core.types.result import Ok
from planner.core.utils.clock import local_now

JOIN_TIMEOUT = 10.0


def _soon(payload: str, ms: int = 200) -> ScheduledTask[str]:
    return ScheduledTask(payload=payload, due_date=local_now() + timedelta(milliseconds=ms))


def _two_lane_scheduler() -> Scheduler[str]:
    return Scheduler(
        {
            'mail': [_soon('mail-1'), _soon('mail-2', ms=500)],
            'billing': [_soon('invoice')],
        }
    )


@pytest.mark.slow
class TestSpawn:
    """Tests for ParallelRunner.spawn() and join handles."""

    def test_spawned_lanes_run_on_their_own_threads(self) -> None:
        scheduler = _two_lane_scheduler()
        runner = ParallelRunner(scheduler)
        seen: dict[str, list[str]] = {'mail': [], 'billing': []}
        threads: dict[str, str] = {}

        def record(lane: str) -> Callable[[str], None]:
            def callback(payload: str) -> None:
                seen[lane].append(payload)
                threads[lane] = threading.current_thread().name

            return callback

        mail = runner.spawn('mail', record('mail'))
        billing = runner.spawn('billing', record('billing'))
        outcomes = runner.join_all(timeout=JOIN_TIMEOUT)

        assert [outcome.lane for outcome in outcomes] == ['mail', 'billing']
        assert all(outcome.result == Ok(None) for outcome in outcomes)
        assert seen == {'mail': ['mail-1', 'mail-2'], 'billing': ['invoice']}
        assert threads == {'mail': 'planner-lane-mail', 'billing': 'planner-lane-billing'}
        assert mail.thread.daemon and billing.thread.daemon
        assert mail.done() and billing.done()

    def test_worker_state_is_isolated(self) -> None:
        """Progress lives in the worker's scheduler copy only."""
        scheduler = _two_lane_scheduler()
        runner = ParallelRunner(scheduler)

        outcome = runner.spawn('mail', lambda _: None).join(timeout=JOIN_TIMEOUT)

        assert isinstance(outcome, LaneOutcome)
        assert outcome.scheduler is not scheduler
        assert outcome.scheduler.lanes['mail'] == []
        assert [task.payload for task in outcome.scheduler.history['mail']] == [
            'mail-1',
            'mail-2',
        ]
        # Lanes the worker did not run are left as cloned
        assert len(outcome.scheduler.lanes['billing']) == 1
        # The source scheduler is untouched
        assert len(scheduler.lanes['mail']) == 2
        assert scheduler.history['mail'] == []

    def test_recurring_counts_are_not_shared(self) -> None:
        task = ScheduledTask(
            payload='tick',
            due_date=local_now() + timedelta(milliseconds=200),
            repetition=WeeklyRepetition(count=FiniteCount(remaining=1)),
        )
        scheduler = Scheduler({'a': [task], 'b': []})
        runner = ParallelRunner(scheduler)

        outcome = runner.spawn('a', lambda _: None).join(timeout=JOIN_TIMEOUT)

        assert outcome.scheduler.lanes['a'] == []
        assert task.repetition.count == FiniteCount(remaining=1)

    def test_unknown_lane_is_reported_in_outcome(self) -> None:
        runner = ParallelRunner(_two_lane_scheduler())

        outcome = runner.spawn('missing', lambda _: None).join(timeout=JOIN_TIMEOUT)

        assert outcome.result.is_err()

    def test_callback_exception_reraised_on_join(self) -> None:
        runner = ParallelRunner(_two_lane_scheduler())

        def explode(payload: str) -> None:
            raise ValueError(f'bad payload {payload}')

        handle = runner.spawn('billing', explode)

        with pytest.raises(ValueError, match='bad payload invoice'):
            handle.join(timeout=JOIN_TIMEOUT)

    def test_join_timeout(self) -> None:
        release = threading.Event()
        runner = ParallelRunner(_two_lane_scheduler())

        handle = runner.spawn('billing', lambda _: release.wait(JOIN_TIMEOUT))
        try:
            with pytest.raises(TimeoutError):
                handle.join(timeout=0.01)
        finally:
            release.set()

        assert handle.join(timeout=JOIN_TIMEOUT).result == Ok(None)


@pytest.mark.slow
class TestRunScoped:
    """Tests for ParallelRunner.run_scoped() and spawn_scoped()."""

    def test_runs_lanes_concurrently_and_returns_in_order(self) -> None:
        """Both lanes wait on each other, so they must overlap."""
        runner = ParallelRunner(_two_lane_scheduler())
        barrier = threading.Barrier(2, timeout=JOIN_TIMEOUT)
        seen: list[str] = []
        lock = threading.Lock()

        def record(payload: str) -> None:
            if payload in ('mail-1', 'invoice'):
                barrier.wait()
            with lock:
                seen.append(payload)

        outcomes = runner.run_scoped({'billing': record, 'mail': record})

        assert list(outcomes) == ['billing', 'mail']
        assert all(outcome.result == Ok(None) for outcome in outcomes.values())
        assert sorted(seen) == ['invoice', 'mail-1', 'mail-2']
        assert seen.index('mail-1') < seen.index('mail-2')

    def test_empty_mapping(self) -> None:
        runner = ParallelRunner(_two_lane_scheduler())

        assert runner.run_scoped({}) == {}

    def test_spawn_scoped_blocks_until_done(self) -> None:
        scheduler = _two_lane_scheduler()
        runner = ParallelRunner(scheduler)
        seen: list[str] = []

        outcome = runner.spawn_scoped('billing', seen.append)

        assert seen == ['invoice']
        assert outcome.lane == 'billing'
        assert outcome.scheduler.history['billing'][0].payload == 'invoice'
        assert len(scheduler.lanes['billing']) == 1
        assert runner.handles == []

    def test_scoped_callback_exception_propagates(self) -> None:
        runner = ParallelRunner(_two_lane_scheduler())

        def explode(payload: str) -> None:
            raise KeyError(payload)

        with pytest.raises(KeyError):
            runner.spawn_scoped('mail', explode)

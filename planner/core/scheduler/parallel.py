# planner/core/scheduler/parallel.py
from __future__ import annotations
import threading
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Generic
from planner.core.logging import get_logger
from planner.core.models.task import PayloadT
from planner.core.scheduler.result_types import LaneRunResult
from planner.core.scheduler.service import Callback, Scheduler


class ParallelRunnerError(RuntimeError):
    """A lane worker thread could not be started."""


@dataclass(frozen=True)
class LaneOutcome(Generic[PayloadT]):
    """Final state of one lane worker.

    Fields:
        lane: the lane that was run
        result: what Scheduler.run returned
        scheduler: the worker's private Scheduler copy, with its lanes and
            history as the run left them
    """

    lane: str
    result: LaneRunResult
    scheduler: Scheduler[PayloadT]


class LaneHandle(Generic[PayloadT]):
    """Join handle of a lane spawned with ParallelRunner.spawn()."""

    def __init__(
        self,
        lane: str,
        thread: threading.Thread,
        future: Future[LaneOutcome[PayloadT]],
    ):
        self.lane = lane
        self.thread = thread
        self._future = future

    def done(self) -> bool:
        return self._future.done()

    def join(self, timeout: float | None = None) -> LaneOutcome[PayloadT]:
        """
        Wait for the lane worker and return its outcome.

        Raises:
            TimeoutError: If the worker is still running after `timeout` seconds
            Exception: Whatever the lane callback raised
        """
        return self._future.result(timeout=timeout)


def _run_lane(
    scheduler: Scheduler[PayloadT], lane: str, callback: Callback[PayloadT]
) -> LaneOutcome[PayloadT]:
    result = scheduler.run(lane, callback)
    return LaneOutcome(lane=lane, result=result, scheduler=scheduler)


class ParallelRunner(Generic[PayloadT]):
    """
    Run lanes concurrently, one thread per lane, without shared state.

    Every worker gets its own deep copy of the Scheduler taken when it is
    spawned. Progress a worker makes (advanced dates, grown history) is
    never visible in `scheduler` nor in sibling workers: collect it from
    the LaneOutcome each worker returns.
    """

    def __init__(self, scheduler: Scheduler[PayloadT]):
        self.scheduler = scheduler
        self.handles: list[LaneHandle[PayloadT]] = []
        self.logger = get_logger('parallel')

    def spawn(self, lane: str, callback: Callback[PayloadT]) -> LaneHandle[PayloadT]:
        """
        Run `lane` on a new daemon thread and return its join handle.

        The handle is also kept in `handles` for join_all().
        """
        worker = self.scheduler.clone()
        future: Future[LaneOutcome[PayloadT]] = Future()
        thread = threading.Thread(
            target=self._run_worker,
            args=(worker, lane, callback, future),
            name=f'planner-lane-{lane}',
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError as exc:
            raise ParallelRunnerError(
                f"Failed to start worker thread for lane '{lane}': {exc}",
            ) from exc

        handle = LaneHandle(lane, thread, future)
        self.handles.append(handle)
        self.logger.info(f"Spawned worker thread for lane '{lane}'")
        return handle

    def spawn_scoped(
        self, lane: str, callback: Callback[PayloadT]
    ) -> LaneOutcome[PayloadT]:
        """Run `lane` on a scoped worker thread and block until it is done."""
        return self.run_scoped({lane: callback})[lane]

    def run_scoped(
        self, callbacks: Mapping[str, Callback[PayloadT]]
    ) -> dict[str, LaneOutcome[PayloadT]]:
        """
        Run several lanes concurrently and block until all of them are done.

        Args:
            callbacks: lane name -> callback for that lane

        Returns:
            lane name -> outcome, in the order of `callbacks`

        Raises:
            Exception: The first (in `callbacks` order) callback exception
        """
        if not callbacks:
            return {}

        with ThreadPoolExecutor(
            max_workers=len(callbacks), thread_name_prefix='planner-scoped'
        ) as pool:
            futures = {
                lane: pool.submit(_run_lane, self.scheduler.clone(), lane, callback)
                for lane, callback in callbacks.items()
            }
        return {lane: future.result() for lane, future in futures.items()}

    def join_all(self, timeout: float | None = None) -> list[LaneOutcome[PayloadT]]:
        """Join every spawned lane, in spawn order."""
        return [handle.join(timeout=timeout) for handle in self.handles]

    def _run_worker(
        self,
        worker: Scheduler[PayloadT],
        lane: str,
        callback: Callback[PayloadT],
        future: Future[LaneOutcome[PayloadT]],
    ) -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            outcome = _run_lane(worker, lane, callback)
        except Exception as exc:
            self.logger.error(f"Lane '{lane}' worker failed: {exc}", exc_info=True)
            future.set_exception(exc)
            return

        future.set_result(outcome)
        self.logger.info(f"Lane '{lane}' worker finished")

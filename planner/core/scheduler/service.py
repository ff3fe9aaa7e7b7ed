# planner/core/scheduler/service.py
from __future__ import annotations
import copy
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any, Generic, Optional, TypeAlias, TypeVar
from planner.core.errors import (
    ConfigurationError,
    ErrorCode,
    ValidationReport,
    raise_collected,
)
from planner.core.logging import get_logger, set_level
from planner.core.models.config import SchedulerConfig
from planner.core.models.repetition import CustomRepetition
from planner.core.models.sleep import SleepStrategy
from planner.core.models.task import PayloadT, ScheduledTask
from planner.core.scheduler.custom import NoCustomRepetition, RepetitionHandler
from planner.core.scheduler.lane import DueDateOutOfRange, LaneQueue
from planner.core.scheduler.result_types import (
    LaneRunError,
    LaneRunErrorCode,
    LaneRunResult,
)
from planner.core.types.result import Err, Ok
from planner.core.utils.clock import local_now
from planner.core.utils.sleep import sleep_for

logger = get_logger('scheduler')

T = TypeVar('T')
Callback: TypeAlias = Callable[[T], None]
Clock: TypeAlias = Callable[[], datetime]
Sleeper: TypeAlias = Callable[[SleepStrategy, timedelta], None]


class Scheduler(Generic[PayloadT]):
    """
    Runs named lanes of scheduled tasks to completion.

    Responsibilities:
    1. Own the tasks of every lane (`lanes`) and the tasks that left them (`history`)
    2. Catch up overdue tasks when a lane starts
    3. Sleep until each due date, fire the callback, then reschedule or remove

    Every lane in `lanes` always has an entry in `history`, possibly empty.
    A lane runs on the calling thread; see ParallelRunner for one thread per lane.

    Note:
        Passing `config` applies `config.log_level` to every `planner.*`
        logger in the process, not only to this scheduler. The last
        scheduler built with an explicit config sets the level; one built
        without a config leaves the current levels alone.
    """

    def __init__(
        self,
        lanes: Mapping[str, Iterable[ScheduledTask[PayloadT]]],
        history: Optional[Mapping[str, Iterable[ScheduledTask[PayloadT]]]] = None,
        *,
        repetition_handler: Optional[RepetitionHandler] = None,
        config: Optional[SchedulerConfig] = None,
        clock: Optional[Clock] = None,
        sleeper: Optional[Sleeper] = None,
    ):
        if config is not None:
            set_level(config.log_level)
        self.config: SchedulerConfig = config or SchedulerConfig()
        self.lanes: dict[str, list[ScheduledTask[PayloadT]]] = {
            name: list(tasks) for name, tasks in lanes.items()
        }
        self.history: dict[str, list[ScheduledTask[PayloadT]]] = {
            name: list(tasks) for name, tasks in (history or {}).items()
        }
        self.has_repetition_handler = repetition_handler is not None
        self.repetition_handler: RepetitionHandler = (
            repetition_handler if repetition_handler is not None else NoCustomRepetition()
        )
        self._clock: Clock = clock or local_now
        self._sleeper: Sleeper = sleeper or sleep_for

        report = ValidationReport('scheduler')
        for name, tasks in self.lanes.items():
            self._validate_lane(name, tasks, report)
        raise_collected(report)

        for name in self.lanes:
            self.history.setdefault(name, [])

        logger.info(
            f'Scheduler initialized with {len(self.lanes)} lane(s), '
            f'{sum(len(tasks) for tasks in self.lanes.values())} task(s)'
        )

    def add_lane(
        self, name: str, tasks: Iterable[ScheduledTask[PayloadT]] = ()
    ) -> None:
        """Add (or replace) a lane, keeping its history entry."""
        lane_tasks = list(tasks)
        report = ValidationReport('scheduler')
        self._validate_lane(name, lane_tasks, report)
        raise_collected(report)

        self.lanes[name] = lane_tasks
        self.history.setdefault(name, [])

    def run(self, lane: str, callback: Callback[PayloadT]) -> LaneRunResult:
        """
        Run a lane until it has no task left.

        Overdue tasks are caught up first (moved forward without firing).
        Then the earliest task is waited for, passed to `callback`, and
        rescheduled or removed, until the lane is empty. A lane holding an
        infinitely recurring task never completes.

        Tasks that left the lane are appended to `history[lane]`, also when
        the run ends with an error or the callback raises.

        Args:
            lane: Name of the lane to run
            callback: Called with each task's payload when it is due

        Returns:
            Ok(None) once the lane is empty, or Err(LaneRunError) with
            UNKNOWN_LANE (nothing touched) or DATE_OUT_OF_RANGE
        """
        tasks = self.lanes.get(lane)
        if tasks is None:
            logger.error(f"Couldn't find the requested lane '{lane}'")
            return Err(
                LaneRunError(
                    code=LaneRunErrorCode.UNKNOWN_LANE,
                    lane=lane,
                    message=f"Couldn't find the requested lane: {lane}",
                )
            )

        queue = LaneQueue(lane, tasks, self.repetition_handler)
        logger.info(f"Starting lane '{lane}' with {len(queue)} task(s)")
        fired = 0
        try:
            queue.catch_up(self._clock())

            while (task := queue.peek()) is not None:
                delay = self._wait_time(task)
                if delay is None:
                    return self._out_of_range(lane, task.due_date)

                self._sleeper(task.sleep_strategy, delay)
                logger.debug(f"Lane '{lane}': firing task due {task.due_date.isoformat()}")
                callback(task.payload)
                fired += 1

                # A wall clock lagging the sleeper must not leave the fired task due
                queue.advance_fired(max(self._clock(), task.due_date))
        except DueDateOutOfRange as exc:
            return self._out_of_range(lane, exc.due_date)
        finally:
            self._merge_history(lane, queue.removed)

        logger.info(f"Lane '{lane}' completed after {fired} firing(s)")
        return Ok(None)

    def clone(self) -> Scheduler[PayloadT]:
        """
        Independent copy of the scheduler state.

        Lanes, history and the repetition handler are deep-copied; the
        config, clock and sleeper are shared.
        """
        twin = copy.copy(self)
        twin.lanes, twin.history, twin.repetition_handler = copy.deepcopy(
            (self.lanes, self.history, self.repetition_handler)
        )
        return twin

    def _wait_time(self, task: ScheduledTask[Any]) -> Optional[timedelta]:
        """Time to wait for `task`, or None when it cannot be waited for."""
        delay = task.due_in(self._clock())
        if delay > self.config.max_wait:
            return None
        # The clock may have moved past the due date since the last pass
        return max(delay, timedelta(0))

    def _out_of_range(self, lane: str, due_date: datetime) -> LaneRunResult:
        logger.warning(
            f"Lane '{lane}' stopped: due date {due_date.isoformat()} is out of range"
        )
        return Err(
            LaneRunError(
                code=LaneRunErrorCode.DATE_OUT_OF_RANGE,
                lane=lane,
                message=f'OutOfRange error occurred on this date {due_date.isoformat()}',
                due_date=due_date,
            )
        )

    def _merge_history(
        self, lane: str, removed: list[ScheduledTask[PayloadT]]
    ) -> None:
        history = self.history.get(lane)
        if history is None:
            raise RuntimeError(
                f"History entry missing for lane '{lane}'; lanes must be added "
                'through Scheduler() or Scheduler.add_lane()'
            )
        history.extend(removed)

    def _validate_lane(
        self,
        name: str,
        tasks: list[ScheduledTask[PayloadT]],
        report: ValidationReport,
    ) -> None:
        if not isinstance(name, str) or not name:
            report.add(
                ConfigurationError(
                    message='lane names must be non-empty strings',
                    code=ErrorCode.CONFIG_INVALID_LANE,
                    notes=[f'lane name: {name!r}'],
                    help_text='give every lane a unique, non-empty name',
                )
            )

        invalid = [task for task in tasks if not isinstance(task, ScheduledTask)]
        if invalid:
            report.add(
                ConfigurationError(
                    message=f"lane '{name}' holds values that are not ScheduledTask",
                    code=ErrorCode.CONFIG_INVALID_LANE,
                    notes=[f'types: {sorted({type(task).__name__ for task in invalid})}'],
                    help_text='wrap each payload in ScheduledTask(payload=..., due_date=...)',
                )
            )

        if self.has_repetition_handler:
            return
        custom_count = sum(
            1
            for task in tasks
            if isinstance(task, ScheduledTask)
            and isinstance(task.repetition, CustomRepetition)
        )
        if custom_count:
            report.add(
                ConfigurationError(
                    message=f"lane '{name}' uses custom repetition without a repetition handler",
                    code=ErrorCode.CONFIG_CUSTOM_HANDLER_MISSING,
                    notes=[f'{custom_count} task(s) with CustomRepetition'],
                    help_text='pass repetition_handler=... to Scheduler()',
                )
            )

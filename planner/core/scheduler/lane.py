# planner/core/scheduler/lane.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Generic, Optional
from planner.core.logging import get_logger
from planner.core.models.repetition import OnceRepetition, RecurringRepetition
from planner.core.models.task import PayloadT, ScheduledTask, due_date_key
from planner.core.scheduler.calculator import advance_due_date, is_due
from planner.core.scheduler.custom import RepetitionHandler

logger = get_logger('lane')


class DueDateOutOfRange(OverflowError):
    """The date following `due_date` cannot be represented."""

    def __init__(self, due_date: datetime):
        super().__init__(f'next due date after {due_date.isoformat()} is out of range')
        self.due_date = due_date


class LaneQueue(Generic[PayloadT]):
    """
    Ordered task queue of one lane for the duration of a run.

    `tasks` is the lane's own list, mutated in place and kept sorted by
    due date. Tasks that leave the lane are appended to `removed` in
    removal order; the Scheduler merges them into its history.

    Two passes advance the overdue prefix of the queue:
    - catch_up(): before the run loop, moves overdue tasks forward without
      consuming their repetition budget (missed occurrences are not counted)
    - advance_fired(): after each callback, consumes the budget and removes
      exhausted tasks
    """

    def __init__(
        self,
        lane: str,
        tasks: list[ScheduledTask[PayloadT]],
        repetition_handler: RepetitionHandler,
    ):
        self.lane = lane
        self.tasks = tasks
        self.removed: list[ScheduledTask[PayloadT]] = []
        self.repetition_handler = repetition_handler
        self.tasks.sort(key=due_date_key)

    def __len__(self) -> int:
        return len(self.tasks)

    def peek(self) -> Optional[ScheduledTask[PayloadT]]:
        """Earliest task of the lane, or None when the lane is empty."""
        return self.tasks[0] if self.tasks else None

    def catch_up(self, now: datetime) -> None:
        """Fast-forward overdue tasks without firing or counting them."""
        self._advance_due_prefix(now, consume=False)

    def advance_fired(self, now: datetime) -> None:
        """Reschedule or remove the tasks that just fired."""
        self._advance_due_prefix(now, consume=True)

    def _due_prefix_length(self, now: datetime) -> int:
        for index, task in enumerate(self.tasks):
            if not is_due(task.due_date, now):
                return index
        return len(self.tasks)

    def _advance_due_prefix(self, now: datetime, consume: bool) -> None:
        cutoff = self._due_prefix_length(now)
        if cutoff == 0:
            return

        kept: list[ScheduledTask[PayloadT]] = []
        processed = 0
        try:
            for task in self.tasks[:cutoff]:
                try:
                    next_due = self._next_due_date(task, now, consume)
                except OverflowError as exc:
                    raise DueDateOutOfRange(task.due_date) from exc
                processed += 1
                if next_due is None:
                    self._remove(task)
                    continue
                task.due_date = next_due
                kept.append(task)
        finally:
            # Tasks not processed before a failure stay queued as they were
            self.tasks[:processed] = kept
            self.tasks.sort(key=due_date_key)

    def _next_due_date(
        self, task: ScheduledTask[Any], now: datetime, consume: bool
    ) -> Optional[datetime]:
        rule = task.repetition
        if isinstance(rule, OnceRepetition):
            return None
        if not (consume and isinstance(rule, RecurringRepetition)):
            return advance_due_date(rule, now, task.due_date, self.repetition_handler)

        budget = rule.count.model_copy()
        if rule.count.consume():
            return None
        try:
            return advance_due_date(rule, now, task.due_date, self.repetition_handler)
        except OverflowError:
            # Overflowing tasks stay queued with their budget intact
            rule.count = budget
            raise

    def _remove(self, task: ScheduledTask[PayloadT]) -> None:
        logger.debug(
            f"Lane '{self.lane}': removing {task.repetition.type} task "
            f'due {task.due_date.isoformat()}'
        )
        self.removed.append(task)

# planner/core/models/task.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Generic, TypeVar
from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator
from planner.core.models.repetition import OnceRepetition, RepetitionRule
from planner.core.models.sleep import NativeSleep, SleepStrategy

PayloadT = TypeVar('PayloadT')


class ScheduledTask(BaseModel, Generic[PayloadT]):
    """
    A payload handed to the lane callback when `due_date` is reached.

    Fields:
        - payload: value passed to the callback (read-only by contract)
        - due_date: next firing instant, timezone-aware with a fixed UTC offset
        - repetition: how `due_date` advances after firing
        - sleep_strategy: how the lane waits for `due_date`

    Tasks are ordered by `due_date` only; `==` still compares every field.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    payload: PayloadT
    due_date: AwareDatetime
    repetition: RepetitionRule = Field(default_factory=OnceRepetition)
    sleep_strategy: SleepStrategy = Field(default_factory=NativeSleep)

    @field_validator('due_date')
    @classmethod
    def normalize_offset(cls, value: datetime) -> datetime:
        """Pin the due date to its current UTC offset (no DST rules)."""
        offset = value.utcoffset()
        if offset is None:
            raise ValueError('due_date must be timezone-aware')
        return value.astimezone(timezone(offset))

    def due_in(self, now: datetime) -> timedelta:
        """Time left until the task is due (negative once overdue)."""
        return self.due_date - now

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, ScheduledTask):
            return NotImplemented
        return self.due_date < other.due_date

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, ScheduledTask):
            return NotImplemented
        return self.due_date <= other.due_date

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, ScheduledTask):
            return NotImplemented
        return self.due_date > other.due_date

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, ScheduledTask):
            return NotImplemented
        return self.due_date >= other.due_date


def due_date_key(task: ScheduledTask[Any]) -> datetime:
    """Sort key for lanes; ties keep insertion order under list.sort()."""
    return task.due_date

# planner/core/models/repetition.py
from __future__ import annotations
from datetime import timedelta
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self
from planner.core.errors import (
    ConfigurationError,
    ErrorCode,
    ValidationReport,
    raise_collected,
)


# =============================================================================
# Repetition counts
# =============================================================================


class InfiniteCount(BaseModel):
    """Occurrence budget that is never exhausted."""

    type: Literal['infinite'] = 'infinite'

    def consume(self) -> bool:
        return False


class FiniteCount(BaseModel):
    """
    Occurrence budget of `remaining` firings.

    `consume()` is called once per firing and reports True when the budget
    has just run out. A budget already at 0 reports exhausted and stays at 0.

    Examples:
        - Fire twice: FiniteCount(remaining=2)
    """

    type: Literal['finite'] = 'finite'
    remaining: int = Field(ge=0, description='Firings left before the task stops')

    def consume(self) -> bool:
        if self.remaining > 0:
            self.remaining -= 1
        return self.remaining == 0


RepetitionCount = Annotated[
    Union[InfiniteCount, FiniteCount],
    Field(discriminator='type'),
]


# =============================================================================
# Repetition rules
# =============================================================================


class OnceRepetition(BaseModel):
    """Fire exactly once, then leave the lane."""

    type: Literal['once'] = 'once'


class WeeklyRepetition(BaseModel):
    """
    Recur every week on the same weekday and time of day.

    Examples:
        - Forever: WeeklyRepetition()
        - Three times: WeeklyRepetition(count=FiniteCount(remaining=3))
    """

    type: Literal['weekly'] = 'weekly'
    count: RepetitionCount = Field(default_factory=InfiniteCount)


class MonthlyRepetition(BaseModel):
    """
    Recur every month on the same day of month and time of day.

    Note: months that do not have the day (e.g. the 31st in April) are
    skipped, so the task keeps its day of month forever.
    """

    type: Literal['monthly'] = 'monthly'
    count: RepetitionCount = Field(default_factory=InfiniteCount)


class YearlyRepetition(BaseModel):
    """
    Recur every year on the same month, day and time of day.

    Note: a task due on February 29 only recurs on leap years.
    """

    type: Literal['yearly'] = 'yearly'
    count: RepetitionCount = Field(default_factory=InfiniteCount)


class ConstantGapRepetition(BaseModel):
    """
    Recur every `gap`, anchored on the task's due date.

    Examples:
        - Every 90 minutes: ConstantGapRepetition(gap=timedelta(minutes=90))
    """

    type: Literal['constant_gap'] = 'constant_gap'
    gap: timedelta = Field(description='Time between two occurrences (> 0)')
    count: RepetitionCount = Field(default_factory=InfiniteCount)

    @model_validator(mode='after')
    def validate_positive_gap(self) -> Self:
        """Ensure the gap is strictly positive."""
        report = ValidationReport('repetition')
        if self.gap <= timedelta(0):
            report.add(invalid_gap_error(self.gap))
        raise_collected(report)
        return self


class CustomRepetition(BaseModel):
    """
    Recurrence decided by the scheduler's RepetitionHandler.

    The handler returns the next due date, or None to stop recurring.
    """

    type: Literal['custom'] = 'custom'


RepetitionRule = Annotated[
    Union[
        OnceRepetition,
        WeeklyRepetition,
        MonthlyRepetition,
        YearlyRepetition,
        ConstantGapRepetition,
        CustomRepetition,
    ],
    Field(discriminator='type'),
]

RecurringRepetition = Union[
    WeeklyRepetition,
    MonthlyRepetition,
    YearlyRepetition,
    ConstantGapRepetition,
]


def invalid_gap_error(gap: timedelta) -> ConfigurationError:
    return ConfigurationError(
        message='constant gap repetition requires a positive gap',
        code=ErrorCode.CONFIG_INVALID_GAP,
        notes=[f'gap: {gap!r}'],
        help_text='use a gap greater than zero, e.g. timedelta(minutes=5)',
    )

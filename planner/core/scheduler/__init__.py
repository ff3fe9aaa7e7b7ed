# planner/core/scheduler/__init__.py
"""
Scheduler module for running lanes of scheduled tasks.

Main components:
- Scheduler: Owns the lanes and runs one lane on the calling thread
- ParallelRunner: Runs lanes concurrently on private Scheduler copies
- LaneQueue: Catch-up and fire passes over one lane
- advance_due_date: Next due date calculation per repetition rule

Example usage:
    from planner.core.scheduler import Scheduler

    scheduler = Scheduler({'reports': [task]})
    result = scheduler.run('reports', send_report)
"""

from planner.core.scheduler.calculator import (
    advance_due_date,
    is_due,
    next_constant_gap,
    next_monthly,
    next_weekly,
    next_yearly,
)
from planner.core.scheduler.custom import NoCustomRepetition, RepetitionHandler
from planner.core.scheduler.lane import DueDateOutOfRange, LaneQueue
from planner.core.scheduler.parallel import (
    LaneHandle,
    LaneOutcome,
    ParallelRunner,
    ParallelRunnerError,
)
from planner.core.scheduler.result_types import (
    LaneRunError,
    LaneRunErrorCode,
    LaneRunResult,
)
from planner.core.scheduler.service import Scheduler

__all__ = [
    'Scheduler',
    'ParallelRunner',
    'ParallelRunnerError',
    'LaneHandle',
    'LaneOutcome',
    'LaneQueue',
    'DueDateOutOfRange',
    'LaneRunError',
    'LaneRunErrorCode',
    'LaneRunResult',
    'RepetitionHandler',
    'NoCustomRepetition',
    'advance_due_date',
    'is_due',
    'next_constant_gap',
    'next_weekly',
    'next_monthly',
    'next_yearly',
]

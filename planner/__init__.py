"""Planner - run lanes of repeating tasks on schedule"""

# Install Rust-style error handler on import
from .core.errors import install_error_handler as _install_error_handler

_install_error_handler()

from .core.models.repetition import (
    InfiniteCount,
    FiniteCount,
    RepetitionCount,
    OnceRepetition,
    WeeklyRepetition,
    MonthlyRepetition,
    YearlyRepetition,
    ConstantGapRepetition,
    CustomRepetition,
    RepetitionRule,
)
from .core.models.sleep import (
    NativeSleep,
    HighPrecisionSleep,
    SpinStrategy,
    SleepStrategy,
)
from .core.models.task import ScheduledTask
from .core.models.config import SchedulerConfig
from .core.scheduler import (
    Scheduler,
    ParallelRunner,
    ParallelRunnerError,
    LaneHandle,
    LaneOutcome,
    LaneRunError,
    LaneRunErrorCode,
    LaneRunResult,
    RepetitionHandler,
    NoCustomRepetition,
)
from .core.codec.serde import (
    SerializationError,
    dumps_scheduler,
    loads_scheduler,
    scheduler_from_json,
    scheduler_to_json,
)
from .core.errors import (
    ErrorCode,
    PlannerError,
    ConfigurationError,
    MisconfiguredRepetitionError,
    ValidationReport,
    MultipleValidationErrors,
)
from .core.types.result import Result, Ok, Err, is_ok, is_err

__all__ = [
    # Scheduling
    'Scheduler',
    'ParallelRunner',
    'ParallelRunnerError',
    'LaneHandle',
    'LaneOutcome',
    'LaneRunError',
    'LaneRunErrorCode',
    'LaneRunResult',
    'RepetitionHandler',
    'NoCustomRepetition',
    # Tasks
    'ScheduledTask',
    'SchedulerConfig',
    'InfiniteCount',
    'FiniteCount',
    'RepetitionCount',
    'OnceRepetition',
    'WeeklyRepetition',
    'MonthlyRepetition',
    'YearlyRepetition',
    'ConstantGapRepetition',
    'CustomRepetition',
    'RepetitionRule',
    'NativeSleep',
    'HighPrecisionSleep',
    'SpinStrategy',
    'SleepStrategy',
    # Persistence
    'SerializationError',
    'dumps_scheduler',
    'loads_scheduler',
    'scheduler_to_json',
    'scheduler_from_json',
    # Errors
    'ErrorCode',
    'PlannerError',
    'ConfigurationError',
    'MisconfiguredRepetitionError',
    'ValidationReport',
    'MultipleValidationErrors',
    # Results
    'Result',
    'Ok',
    'Err',
    'is_ok',
    'is_err',
]

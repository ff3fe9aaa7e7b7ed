# planner/core/models/sleep.py
from __future__ import annotations
from enum import Enum
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field
from planner.core.defaults import DEFAULT_NATIVE_ACCURACY_NS


class SpinStrategy(str, Enum):
    """How the spin phase of a high-precision sleep waits."""

    # Give the GIL and the CPU back on every iteration
    YIELD_THREAD = 'yield_thread'
    # Busy-loop on the performance counter
    SPIN_LOOP_HINT = 'spin_loop_hint'


class NativeSleep(BaseModel):
    """
    Plain OS sleep.

    Costs nothing while waiting; accurate enough for second-level schedules.
    """

    type: Literal['native'] = 'native'


class HighPrecisionSleep(BaseModel):
    """
    OS sleep for most of the wait, then spin until the deadline.

    Fields:
        - native_accuracy_ns: how early the OS sleep stops before the deadline
        - spin_strategy: how the remaining time is spun away

    Burns CPU during the spin phase; use it for sub-millisecond schedules.
    """

    type: Literal['high_precision'] = 'high_precision'
    native_accuracy_ns: int = Field(
        default=DEFAULT_NATIVE_ACCURACY_NS,
        ge=0,
        description='Margin left to the spin phase, in nanoseconds',
    )
    spin_strategy: SpinStrategy = Field(
        default=SpinStrategy.YIELD_THREAD, description='Spin phase behaviour'
    )


SleepStrategy = Annotated[
    Union[NativeSleep, HighPrecisionSleep],
    Field(discriminator='type'),
]

# planner/core/utils/sleep.py
from __future__ import annotations
import time
from datetime import timedelta
from planner.core.models.sleep import (
    HighPrecisionSleep,
    NativeSleep,
    SleepStrategy,
    SpinStrategy,
)


def sleep_for(strategy: SleepStrategy, duration: timedelta) -> None:
    """Block the calling thread for `duration` using the given strategy."""
    seconds = duration.total_seconds()
    if seconds <= 0:
        return

    match strategy:
        case NativeSleep():
            time.sleep(seconds)
        case HighPrecisionSleep():
            _spin_sleep(seconds, strategy.native_accuracy_ns, strategy.spin_strategy)


def _spin_sleep(seconds: float, native_accuracy_ns: int, spin: SpinStrategy) -> None:
    """OS sleep until `native_accuracy_ns` before the deadline, then spin."""
    deadline = time.perf_counter() + seconds
    native_seconds = seconds - native_accuracy_ns / 1_000_000_000
    if native_seconds > 0:
        time.sleep(native_seconds)

    while time.perf_counter() < deadline:
        if spin is SpinStrategy.YIELD_THREAD:
            time.sleep(0)

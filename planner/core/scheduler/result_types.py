"""Typed error values for lane runs.

Result propagation policy
-------------------------
* ``Scheduler.run`` returns ``LaneRunResult``.  Failures local to one lane
  (the lane does not exist, a due date cannot be waited for) are ``Err``
  values: they end that run only, and the caller decides whether to retry
  with another lane name, fix the offending task, or give up.

* Configuration mistakes (non-positive gaps, custom repetition without a
  handler) are programmer errors and raise ``ConfigurationError``.

* An exception raised by the lane callback is not caught: it ends the run
  and propagates to the caller (or to ``LaneHandle.join`` for spawned lanes).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TypeAlias

from planner.core.types.result import Result


class LaneRunErrorCode(str, Enum):
    """Categorized lane run failure codes."""

    UNKNOWN_LANE = 'UNKNOWN_LANE'
    DATE_OUT_OF_RANGE = 'DATE_OUT_OF_RANGE'


@dataclass(slots=True, frozen=True)
class LaneRunError:
    """Error payload carried inside Err(...) for lane runs.

    Fields:
        code: which failure happened
        lane: the lane that was requested
        message: human-readable description
        due_date: the offending due date (DATE_OUT_OF_RANGE only)
    """

    code: LaneRunErrorCode
    lane: str
    message: str
    due_date: datetime | None = None


LaneRunResult: TypeAlias = Result[None, LaneRunError]

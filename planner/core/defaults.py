"""Shared default constants for the planner library."""

import threading
from datetime import timedelta

# Cadence of the weekly repetition rule.
WEEK: timedelta = timedelta(days=7)

# Time left to the spin phase of a high-precision sleep. The OS sleep is
# trusted to wake up no later than this before the deadline.
DEFAULT_NATIVE_ACCURACY_NS: int = 125_000  # 125 microseconds

# Longest wait a lane will block for. Due dates further away than this
# are reported as out of range instead of being slept on.
DEFAULT_MAX_WAIT: timedelta = timedelta(seconds=threading.TIMEOUT_MAX)

# Upper bounds for the calendar searches of monthly and yearly rollovers.
MAX_MONTH_SEARCH: int = 48
MAX_YEAR_SEARCH: int = 9

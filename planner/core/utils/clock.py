# planner/core/utils/clock.py
from datetime import datetime


def local_now() -> datetime:
    """Current local time, pinned to the local UTC offset."""
    return datetime.now().astimezone()

# planner/core/scheduler/custom.py
from __future__ import annotations
from datetime import datetime
from typing import Optional, Protocol
from planner.core.errors import ErrorCode, MisconfiguredRepetitionError


class RepetitionHandler(Protocol):
    """Decides the next due date of tasks using CustomRepetition."""

    def next_date(
        self, reference: datetime, current: datetime
    ) -> Optional[datetime]:
        """
        Args:
            reference: instant the lane is advancing from (timezone-aware)
            current: the task's due date that has just passed

        Returns:
            The next due date, or None to remove the task from its lane
        """
        ...


class NoCustomRepetition:
    """Default handler: reaching a custom-repetition task with it is a bug."""

    def next_date(
        self, reference: datetime, current: datetime
    ) -> Optional[datetime]:
        raise MisconfiguredRepetitionError(
            message='custom repetition reached without a repetition handler',
            code=ErrorCode.CONFIG_CUSTOM_HANDLER_MISSING,
            notes=[f'task due at {current.isoformat()}'],
            help_text='pass repetition_handler=... when building the Scheduler',
        )

    def __repr__(self) -> str:
        return 'NoCustomRepetition()'

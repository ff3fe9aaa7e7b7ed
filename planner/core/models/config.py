# planner/core/models/config.py
from __future__ import annotations
import logging
from datetime import timedelta
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self
from planner.core.defaults import DEFAULT_MAX_WAIT
from planner.core.errors import (
    ConfigurationError,
    ErrorCode,
    ValidationReport,
    raise_collected,
)

_LOG_LEVELS = (
    logging.DEBUG,
    logging.INFO,
    logging.WARNING,
    logging.ERROR,
    logging.CRITICAL,
)


class SchedulerConfig(BaseModel):
    """
    Runtime settings shared by every lane of a Scheduler.

    Fields:
        - max_wait: longest single wait; due dates further away are out of range
        - log_level: level applied to planner loggers created afterwards
    """

    model_config = ConfigDict(frozen=True)

    max_wait: timedelta = Field(
        default=DEFAULT_MAX_WAIT, description='Longest single wait for a due date'
    )
    log_level: int = Field(default=logging.INFO, description='Planner log level')

    @model_validator(mode='after')
    def validate_settings(self) -> Self:
        """Collects all independent errors and raises them together."""
        report = ValidationReport('config')
        if self.max_wait <= timedelta(0) or self.max_wait > DEFAULT_MAX_WAIT:
            report.add(
                ConfigurationError(
                    message='max_wait out of range',
                    code=ErrorCode.CONFIG_INVALID_SCHEDULER,
                    notes=[f'max_wait: {self.max_wait!r}'],
                    help_text=f'use a positive duration no longer than {DEFAULT_MAX_WAIT!r}',
                )
            )
        if self.log_level not in _LOG_LEVELS:
            report.add(
                ConfigurationError(
                    message='log_level is not a standard logging level',
                    code=ErrorCode.CONFIG_INVALID_SCHEDULER,
                    notes=[f'log_level: {self.log_level!r}'],
                    help_text='use logging.DEBUG, INFO, WARNING, ERROR or CRITICAL',
                )
            )
        raise_collected(report)
        return self

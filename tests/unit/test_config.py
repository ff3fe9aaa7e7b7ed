"""Tests for SchedulerConfig validation."""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest
from pydantic import ValidationError

from planner.core.defaults import DEFAULT_MAX_WAIT
from planner.core.errors import ConfigurationError, ErrorCode, MultipleValidationErrors
from planner.core.models.config import SchedulerConfig


@pytest.mark.unit
class TestSchedulerConfig:
    """Tests for SchedulerConfig."""

    def test_defaults(self) -> None:
        config = SchedulerConfig()

        assert config.max_wait == DEFAULT_MAX_WAIT
        assert config.log_level == logging.INFO

    def test_is_frozen(self) -> None:
        config = SchedulerConfig()

        with pytest.raises(ValidationError):
            config.max_wait = timedelta(seconds=1)  # type: ignore[misc]

    @pytest.mark.parametrize(
        'max_wait',
        [timedelta(0), timedelta(seconds=-1), DEFAULT_MAX_WAIT + timedelta(seconds=1)],
    )
    def test_max_wait_out_of_range(self, max_wait: timedelta) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            SchedulerConfig(max_wait=max_wait)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_SCHEDULER
        assert 'max_wait' in exc_info.value.message

    def test_unknown_log_level(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            SchedulerConfig(log_level=15)

        assert 'log_level' in exc_info.value.message

    def test_errors_collected_together(self) -> None:
        with pytest.raises(MultipleValidationErrors) as exc_info:
            SchedulerConfig(max_wait=timedelta(0), log_level=7)

        assert len(exc_info.value.report.errors) == 2
        text = str(exc_info.value)
        assert 'max_wait out of range' in text
        assert 'aborting due to 2 previous errors' in text

    def test_accepts_from_mapping(self) -> None:
        """Settings can come from parsed config files."""
        config = SchedulerConfig.model_validate({'max_wait': 'PT1H', 'log_level': 30})

        assert config.max_wait == timedelta(hours=1)
        assert config.log_level == logging.WARNING

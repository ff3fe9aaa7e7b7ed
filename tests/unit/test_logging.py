"""Unit tests for planner logging module."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator

import pytest

from planner.core import logging as planner_logging
from planner.core.logging import ColoredFormatter, get_logger, set_default_level, set_level
from planner.core.models.config import SchedulerConfig
from planner.core.scheduler.service import Scheduler

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _restore_levels() -> Iterator[None]:
    """Restore the default level and every planner logger after each test."""
    original = planner_logging._default_level
    yield
    set_level(original)


def _unique_component() -> str:
    return f'test_{uuid.uuid4().hex[:8]}'


class TestSetDefaultLevel:
    """Tests for set_default_level()."""

    def test_changes_module_variable(self) -> None:
        set_default_level(logging.DEBUG)
        assert planner_logging._default_level == logging.DEBUG

    def test_new_logger_uses_default_level(self) -> None:
        set_default_level(logging.WARNING)

        logger = get_logger(_unique_component())

        assert logger.level == logging.WARNING
        assert all(handler.level == logging.WARNING for handler in logger.handlers)

    def test_logger_is_namespaced_and_isolated(self) -> None:
        component = _unique_component()

        logger = get_logger(component)

        assert logger.name == f'planner.{component}'
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        assert get_logger(component) is logger
        assert len(logger.handlers) == 1


class TestSetLevel:
    """Tests for set_level() and SchedulerConfig.log_level."""

    def test_updates_existing_loggers(self) -> None:
        logger = get_logger(_unique_component())

        set_level(logging.ERROR)

        assert logger.level == logging.ERROR
        assert all(handler.level == logging.ERROR for handler in logger.handlers)

    def test_leaves_foreign_loggers_alone(self) -> None:
        foreign = logging.getLogger(f'elsewhere.{_unique_component()}')
        foreign.setLevel(logging.INFO)

        set_level(logging.CRITICAL)

        assert foreign.level == logging.INFO

    def test_scheduler_config_applies_level(self) -> None:
        Scheduler({}, config=SchedulerConfig(log_level=logging.DEBUG))

        assert logging.getLogger('planner.scheduler').level == logging.DEBUG
        assert logging.getLogger('planner.lane').level == logging.DEBUG

    def test_scheduler_without_config_keeps_level(self) -> None:
        """Only an explicit config re-levels the process-wide planner loggers."""
        Scheduler({}, config=SchedulerConfig(log_level=logging.WARNING))

        Scheduler({})

        assert logging.getLogger('planner.scheduler').level == logging.WARNING

    def test_last_explicit_config_wins(self) -> None:
        Scheduler({}, config=SchedulerConfig(log_level=logging.DEBUG))

        Scheduler({}, config=SchedulerConfig(log_level=logging.ERROR))

        assert logging.getLogger('planner.scheduler').level == logging.ERROR


class TestColoredFormatter:
    """Tests for ColoredFormatter output."""

    def test_formats_component_level_and_message(self) -> None:
        record = logging.LogRecord(
            name='planner.scheduler',
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="Lane '%s' stopped",
            args=('reports',),
            exc_info=None,
        )

        formatted = ColoredFormatter().format(record)

        assert '[scheduler]' in formatted
        assert '[WARNING]' in formatted
        assert "Lane 'reports' stopped" in formatted
        assert '\033[93m' in formatted

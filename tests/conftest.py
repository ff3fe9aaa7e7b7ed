"""Root test configuration for planner tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from dotenv import load_dotenv

from tests.helpers.clock import FakeClock

# Load test environment before any test module imports
load_dotenv(dotenv_path=Path(__file__).parent.parent / '.env.test')


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line('markers', 'unit: Unit tests (simulated clock)')
    config.addinivalue_line('markers', 'slow: Tests that wait on the real clock')


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting on Monday 2025-06-02 09:30 at UTC+02:00."""
    return FakeClock()

"""
Pytest configuration and fixtures for Banward tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from banward.scheduler.schedule_store import ScheduleStore  # noqa: E402


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "tempbans.json"


@pytest.fixture()
def store(store_path: Path) -> ScheduleStore:
    return ScheduleStore(store_path)


@pytest.fixture()
def executor() -> AsyncMock:
    return AsyncMock(return_value=None)

"""Shared fixtures for chronoplan tests."""

import os
import time
from collections.abc import Generator
from datetime import datetime
from typing import Any, Callable

import pytest

from chronoplan.core.config_loader import ENV_OVERRIDES
from chronoplan.domain.models import Task
from tests.helpers import local

# Wall-clock arithmetic follows the host zone; pin it to one with DST so
# day boundaries and recurrence steps are deterministic.
if hasattr(time, "tzset"):
    os.environ["TZ"] = "America/Los_Angeles"
    time.tzset()


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear CHRONOPLAN_* variables so host settings never leak into tests."""
    for key in (*ENV_OVERRIDES, "CHRONOPLAN_TEST_TIME", "CHRONOPLAN_DEBUG"):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks with sensible defaults.

    ``start``/``end`` default to Monday 2024-01-08 09:00-10:00 local.
    Pass ``frequency`` (and optionally ``interval``/``until``) for a series.
    """

    def _make(
        task_id: str = "t1",
        title: str = "Task",
        start: datetime | None = None,
        end: datetime | None = None,
        frequency: str | None = None,
        interval: int = 1,
        until: datetime | None = None,
        **fields: Any,
    ) -> Task:
        start = start or local(2024, 1, 8, 9, 0)
        end = end or local(2024, 1, 8, 10, 0)
        recurrence = None
        if frequency is not None:
            recurrence = {"frequency": frequency, "interval": interval, "until": until}
        return Task(
            id=task_id,
            title=title,
            start=start,
            end=end,
            recurrence=recurrence,
            **fields,
        )

    return _make

"""Time helpers for chronoplan.

All instants handled by the engine are timezone-aware datetimes. Calendar
arithmetic (day boundaries, recurrence steps) follows the host's local wall
clock, the same way a browser's ``Date`` does.
"""

from __future__ import annotations

import datetime
import logging
import os

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

UTC = datetime.timezone.utc


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden for testing via the CHRONOPLAN_TEST_TIME environment
    variable (ISO 8601, e.g. "2024-01-08T09:00:00+00:00"). Naive override
    values are taken as UTC.
    """
    test_time = os.environ.get("CHRONOPLAN_TEST_TIME")
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
            if dt.tzinfo is not None:
                return dt.astimezone(UTC)
            return dt.replace(tzinfo=UTC)
        except ValueError as e:
            logger.warning("Failed to parse CHRONOPLAN_TEST_TIME=%r: %s", test_time, e)

    return datetime.datetime.now(UTC)


def ensure_aware(dt: datetime.datetime) -> datetime.datetime:
    """Attach the host local timezone to a naive datetime; aware values pass through."""
    if dt.tzinfo is None:
        return dt.astimezone()
    return dt


def to_local_wall(dt: datetime.datetime) -> datetime.datetime:
    """Return the naive local wall-clock reading of an instant."""
    return ensure_aware(dt).astimezone().replace(tzinfo=None)


def from_local_wall(wall: datetime.datetime) -> datetime.datetime:
    """Interpret a naive local wall-clock reading as an aware UTC instant."""
    return wall.astimezone(UTC)


def format_instant(dt: datetime.datetime) -> str:
    """Render an instant as UTC ISO-8601 with milliseconds and a ``Z`` suffix.

    ``2024-01-01T09:00:00.000Z`` - the form stored in ``completedInstances``
    and embedded in composite occurrence ids.
    """
    utc = ensure_aware(dt).astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_instant(value: str) -> datetime.datetime:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Raises:
        ValueError: if the string is not an ISO-8601 timestamp.
    """
    dt = date_parser.isoparse(value)
    return ensure_aware(dt).astimezone(UTC)


def local_day_window(day: datetime.date) -> tuple[datetime.datetime, datetime.datetime]:
    """Return ``[local midnight, next local midnight)`` for ``day`` as UTC instants."""
    start = datetime.datetime.combine(day, datetime.time.min)
    end = start + datetime.timedelta(days=1)
    return from_local_wall(start), from_local_wall(end)


def local_week_window(day: datetime.date) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the Sunday-to-Sunday local week containing ``day`` as UTC instants."""
    # date.weekday(): Monday=0 .. Sunday=6
    offset = (day.weekday() + 1) % 7
    sunday = day - datetime.timedelta(days=offset)
    start = datetime.datetime.combine(sunday, datetime.time.min)
    end = start + datetime.timedelta(days=7)
    return from_local_wall(start), from_local_wall(end)


def today_window(now: datetime.datetime) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the local-day window containing ``now``."""
    return local_day_window(to_local_wall(now).date())

"""Occurrence expansion for chronoplan task series.

Materializes the concrete occurrences of every series that overlap a
half-open window ``[window_start, window_end)``. Recurrence steps are
field-wise increments on the host's local wall clock (``dateutil``
``relativedelta``); each occurrence keeps the series' absolute duration.

Month and year steps move the month (or year) field and keep the day number.
A day past the end of the target month rolls over into the next month, and
later steps continue from the rolled date: a series starting Jan 31 2024
recurs on Mar 2, Apr 2, May 2, ... with no February occurrence. A Feb 29
yearly series moves to Mar 1 in common years.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Callable

from dateutil.relativedelta import relativedelta

from chronoplan.core.timezone_utils import UTC, format_instant, from_local_wall, to_local_wall

from .models import Occurrence, RecurrenceFrequency, Task

logger = logging.getLogger(__name__)

# Hard bound on loop iterations per series. Occurrences past the cap inside
# the requested window are omitted; callers must accept that approximation.
MAX_ITERATIONS = 1000

_STEPS: dict[RecurrenceFrequency, Callable[[int], relativedelta]] = {
    RecurrenceFrequency.DAILY: lambda n: relativedelta(days=n),
    RecurrenceFrequency.WEEKLY: lambda n: relativedelta(days=7 * n),
    RecurrenceFrequency.MONTHLY: lambda n: relativedelta(months=n),
    RecurrenceFrequency.YEARLY: lambda n: relativedelta(years=n),
}

# Steps whose target month may be shorter than the current day number
_ROLLOVER_STEPS = frozenset({RecurrenceFrequency.MONTHLY, RecurrenceFrequency.YEARLY})


def _add_rolling_over(wall: datetime, step: relativedelta) -> datetime:
    """Step from day 1 of the month, then re-add the day number so it can overflow."""
    return wall.replace(day=1) + step + timedelta(days=wall.day - 1)


def normalize_interval(interval: int | None) -> int:
    """Non-positive or missing intervals act as 1."""
    if interval is None or interval < 1:
        return 1
    return interval


def next_occurrence_start(
    current: datetime, frequency: RecurrenceFrequency, interval: int
) -> datetime:
    """Return the start of the occurrence following ``current``.

    Args:
        current: Start of the current occurrence (aware).
        frequency: Any frequency except ``NONE``.
        interval: Step multiplier; normalized to at least 1.

    Returns:
        Aware UTC datetime.

    Raises:
        ValueError: for ``RecurrenceFrequency.NONE``, or when the step leaves
            the representable date range.
    """
    frequency = RecurrenceFrequency(frequency)
    step = _STEPS.get(frequency)
    if step is None:
        raise ValueError(f"frequency {frequency!r} does not repeat")
    delta = step(normalize_interval(interval))
    try:
        wall = to_local_wall(current)
        if frequency in _ROLLOVER_STEPS:
            wall = _add_rolling_over(wall, delta)
        else:
            wall = wall + delta
        return from_local_wall(wall)
    except OverflowError as exc:
        raise ValueError(f"next occurrence after {current!r} is out of range") from exc


def _overlaps(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> bool:
    return start < window_end and end > window_start


def expand_series(
    task: Task,
    window_start: datetime,
    window_end: datetime,
    max_iterations: int = MAX_ITERATIONS,
) -> list[Occurrence]:
    """Materialize the occurrences of one series inside the window."""
    recurrence = task.recurrence
    if recurrence is None or recurrence.frequency == RecurrenceFrequency.NONE:
        if _overlaps(task.start, task.end, window_start, window_end):
            return [Occurrence.for_series(task)]
        return []

    frequency = recurrence.frequency
    interval = normalize_interval(recurrence.interval)
    until = recurrence.until
    duration: timedelta = task.end - task.start
    completed_instances = frozenset(task.completed_instances)

    occurrences: list[Occurrence] = []
    current = task.start.astimezone(UTC)
    iterations = 0

    while current < window_end and (until is None or current <= until):
        if iterations >= max_iterations:
            logger.debug(
                "Expansion of series %s stopped at iteration cap %d (reached %s)",
                task.id,
                max_iterations,
                current,
            )
            break
        iterations += 1

        current_end = current + duration
        if _overlaps(current, current_end, window_start, window_end):
            occurrences.append(
                Occurrence.for_instance(
                    task,
                    start=current,
                    end=current_end,
                    completed=format_instant(current) in completed_instances,
                )
            )

        try:
            current = next_occurrence_start(current, frequency, interval)
        except ValueError:
            logger.debug("Series %s ran past the representable date range", task.id)
            break

    return occurrences


def expand_occurrences(
    series: Iterable[Task],
    window_start: datetime,
    window_end: datetime,
    *,
    max_iterations: int = MAX_ITERATIONS,
) -> list[Occurrence]:
    """Materialize all occurrences of ``series`` overlapping ``[window_start, window_end)``.

    Args:
        series: Task definitions.
        window_start: Inclusive window start (aware).
        window_end: Exclusive window end (aware).
        max_iterations: Per-series loop bound.

    Returns:
        Occurrences grouped by series in input order, chronological within a
        series. An inverted window yields an empty list.
    """
    if window_start > window_end:
        logger.debug("Inverted window %s > %s; nothing to expand", window_start, window_end)
        return []

    result: list[Occurrence] = []
    for task in series:
        result.extend(expand_series(task, window_start, window_end, max_iterations))
    return result

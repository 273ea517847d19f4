"""Day, week and list layouts over the task list."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from enum import Enum

from chronoplan.core.timezone_utils import local_day_window, local_week_window

from .conflicts import has_conflict
from .models import Occurrence, Task
from .recurrence import MAX_ITERATIONS, expand_occurrences


class ViewMode(str, Enum):
    DAY = "Day"
    WEEK = "Week"
    LIST = "List"

    @classmethod
    def parse(cls, value: str | None) -> ViewMode:
        """Case-insensitive lookup; ``None`` means the day view.

        Raises:
            ValueError: for an unknown view name.
        """
        if value is None:
            return cls.DAY
        for mode in cls:
            if mode.value.lower() == value.strip().lower():
                return mode
        raise ValueError(f"unknown view {value!r}")


def view_window(mode: ViewMode, anchor: date) -> tuple[datetime, datetime]:
    """Local window of the day or week view containing ``anchor``.

    Raises:
        ValueError: for the list view, which has no window.
    """
    if mode == ViewMode.DAY:
        return local_day_window(anchor)
    if mode == ViewMode.WEEK:
        return local_week_window(anchor)
    raise ValueError("list view is not bounded by a window")


def _matches(occurrence: Occurrence, query: str) -> bool:
    return query in occurrence.title.lower() or query in occurrence.description.lower()


def visible_occurrences(
    tasks: Sequence[Task],
    mode: ViewMode,
    anchor: date,
    query: str = "",
    *,
    max_iterations: int = MAX_ITERATIONS,
) -> list[Occurrence]:
    """Occurrences shown by a view, sorted by start.

    Day and week views expand their window; the list view shows one
    series-level entry per stored task. A non-blank query keeps entries whose
    title or description contains it, case-insensitively.
    """
    if mode == ViewMode.LIST:
        occurrences = [Occurrence.for_series(task) for task in tasks]
    else:
        window_start, window_end = view_window(mode, anchor)
        occurrences = expand_occurrences(
            tasks, window_start, window_end, max_iterations=max_iterations
        )

    needle = query.strip().lower()
    if needle:
        occurrences = [occ for occ in occurrences if _matches(occ, needle)]

    return sorted(occurrences, key=lambda occ: occ.start)


def annotate_conflicts(
    occurrences: Sequence[Occurrence], mode: ViewMode = ViewMode.DAY
) -> list[tuple[Occurrence, bool]]:
    """Pair each occurrence with its conflict flag against the rest of the view.

    In the list view recurring series are never flagged: their stored span is
    only the first occurrence, not a meaningful schedule.
    """
    annotated = []
    for occurrence in occurrences:
        if mode == ViewMode.LIST and occurrence.is_recurring:
            annotated.append((occurrence, False))
            continue
        annotated.append((occurrence, has_conflict(occurrence, occurrences)))
    return annotated

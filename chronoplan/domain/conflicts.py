"""Conflict detection between materialized occurrences.

Two occurrences conflict when they belong to different series, neither is
completed, and their spans strictly overlap (touching at a single instant
does not count). Checks are linear in the pool size; rendering one bounded
window calls them once per visible occurrence.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import Occurrence
from .virtual_id import series_id_of


def _series_of(occurrence: Occurrence) -> str:
    # The flat id is what rendering collaborators hand back; decode it so a
    # series-level view and its instances compare equal.
    return series_id_of(occurrence.id)


def _conflicts(a: Occurrence, b: Occurrence, a_series: str) -> bool:
    if _series_of(b) == a_series:
        return False
    if a.completed or b.completed:
        return False
    return a.start < b.end and a.end > b.start


def has_conflict(target: Occurrence, pool: Iterable[Occurrence]) -> bool:
    """Return True if ``target`` overlaps any occurrence of another series in ``pool``."""
    target_series = _series_of(target)
    return any(_conflicts(target, other, target_series) for other in pool)


def conflicting_ids(target: Occurrence, pool: Iterable[Occurrence]) -> list[str]:
    """Ids of every pool occurrence that conflicts with ``target``, in pool order."""
    target_series = _series_of(target)
    return [other.id for other in pool if _conflicts(target, other, target_series)]


def conflict_flags(occurrences: Sequence[Occurrence]) -> dict[str, bool]:
    """Map each occurrence id to whether it conflicts with another in the same set."""
    return {occ.id: has_conflict(occ, occurrences) for occ in occurrences}

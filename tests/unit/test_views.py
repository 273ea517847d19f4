"""Tests for day, week and list views."""

from datetime import date

import pytest

from chronoplan.core.timezone_utils import format_instant
from chronoplan.domain.views import ViewMode, annotate_conflicts, view_window, visible_occurrences
from tests.helpers import local

pytestmark = pytest.mark.unit


@pytest.fixture
def tasks(make_task):
    return [
        make_task("lunch", title="Lunch", start=local(2024, 1, 10, 12, 0), end=local(2024, 1, 10, 13, 0)),
        make_task("standup", title="Standup", description="Team SYNC", frequency="Daily"),
        make_task("review", title="Review", start=local(2024, 1, 10, 9, 30), end=local(2024, 1, 10, 10, 30)),
    ]


class TestViewMode:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(None, ViewMode.DAY), ("day", ViewMode.DAY), ("WEEK", ViewMode.WEEK), (" list ", ViewMode.LIST)],
    )
    def test_parse(self, raw, expected):
        assert ViewMode.parse(raw) == expected

    def test_parse_when_unknown_then_raises(self):
        with pytest.raises(ValueError):
            ViewMode.parse("month")


class TestViewWindow:
    def test_week_window_starts_on_sunday(self):
        start, end = view_window(ViewMode.WEEK, date(2024, 1, 10))
        assert format_instant(start) == "2024-01-07T08:00:00.000Z"
        assert format_instant(end) == "2024-01-14T08:00:00.000Z"

    def test_week_window_when_anchor_is_sunday_then_starts_that_day(self):
        start, _ = view_window(ViewMode.WEEK, date(2024, 1, 7))
        assert start == local(2024, 1, 7)

    def test_day_window_is_local_midnight_to_midnight(self):
        start, end = view_window(ViewMode.DAY, date(2024, 1, 10))
        assert (start, end) == (local(2024, 1, 10), local(2024, 1, 11))

    def test_list_view_has_no_window(self):
        with pytest.raises(ValueError):
            view_window(ViewMode.LIST, date(2024, 1, 10))


class TestVisibleOccurrences:
    def test_day_view_then_sorted_by_start(self, tasks):
        result = visible_occurrences(tasks, ViewMode.DAY, date(2024, 1, 10))
        assert [o.series_id for o in result] == ["standup", "review", "lunch"]

    def test_week_view_then_expands_recurring_series(self, tasks):
        result = visible_occurrences(tasks, ViewMode.WEEK, date(2024, 1, 10))
        assert sum(1 for o in result if o.series_id == "standup") == 6

    def test_list_view_then_one_entry_per_task(self, tasks):
        result = visible_occurrences(tasks, ViewMode.LIST, date(2024, 1, 10))
        assert sorted(o.id for o in result) == ["lunch", "review", "standup"]

    def test_query_matches_title_or_description_case_insensitively(self, tasks):
        by_description = visible_occurrences(tasks, ViewMode.LIST, date(2024, 1, 10), "sync")
        by_title = visible_occurrences(tasks, ViewMode.DAY, date(2024, 1, 10), "LUN")

        assert [o.id for o in by_description] == ["standup"]
        assert [o.id for o in by_title] == ["lunch"]

    def test_blank_query_then_no_filter(self, tasks):
        assert len(visible_occurrences(tasks, ViewMode.LIST, date(2024, 1, 10), "   ")) == 3


class TestAnnotateConflicts:
    def test_day_view_then_overlaps_flagged(self, tasks):
        occurrences = visible_occurrences(tasks, ViewMode.DAY, date(2024, 1, 10))
        flags = {o.series_id: flag for o, flag in annotate_conflicts(occurrences, ViewMode.DAY)}
        assert flags == {"standup": True, "review": True, "lunch": False}

    def test_list_view_then_recurring_series_never_flagged(self, make_task):
        tasks = [
            make_task("standup", frequency="Daily"),
            make_task("meeting", start=local(2024, 1, 8, 9, 30), end=local(2024, 1, 8, 10, 30)),
        ]
        occurrences = visible_occurrences(tasks, ViewMode.LIST, date(2024, 1, 8))
        flags = {o.id: flag for o, flag in annotate_conflicts(occurrences, ViewMode.LIST)}
        assert flags == {"standup": False, "meeting": True}

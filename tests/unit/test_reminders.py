"""Tests for the reminder scanner, notified registry and inbox."""

import asyncio
import logging
from datetime import timedelta

import pytest

from chronoplan.domain.recurrence import expand_occurrences
from chronoplan.domain.reminders import (
    EARLIEST_INSTANT,
    REMINDER_GRACE,
    NotifiedRegistry,
    ReminderInbox,
    ReminderScanner,
    is_reminder_due,
    reminder_instant,
)
from tests.helpers import local

pytestmark = pytest.mark.unit


def _scanner(tasks, notifier, **kwargs):
    return ReminderScanner(lambda: tasks, notifier, **kwargs)


def _occurrence(make_task, **fields):
    task = make_task(**fields)
    return expand_occurrences([task], local(2024, 1, 1), local(2024, 2, 1))[0]


class TestReminderWindow:
    def test_reminder_instant_is_start_minus_offset(self, make_task):
        occ = _occurrence(make_task, reminder_minutes=15)
        assert reminder_instant(occ) == local(2024, 1, 8, 8, 45)

    def test_is_reminder_due_boundaries(self, make_task):
        occ = _occurrence(make_task, reminder_minutes=15)

        assert not is_reminder_due(occ, local(2024, 1, 8, 8, 44, 59))
        assert is_reminder_due(occ, local(2024, 1, 8, 8, 45))
        assert is_reminder_due(occ, local(2024, 1, 8, 9, 0, 59))
        assert not is_reminder_due(occ, local(2024, 1, 8, 9, 1))

    def test_zero_offset_then_due_from_start_for_grace_period(self, make_task):
        occ = _occurrence(make_task, reminder_minutes=0)

        assert not is_reminder_due(occ, local(2024, 1, 8, 8, 59, 59))
        assert is_reminder_due(occ, local(2024, 1, 8, 9, 0))
        assert not is_reminder_due(occ, occ.start + REMINDER_GRACE)

    def test_reminder_instant_when_offset_reaches_before_year_one_then_earliest_instant(
        self, make_task
    ):
        occ = _occurrence(make_task, reminder_minutes=10**10)

        assert reminder_instant(occ) == EARLIEST_INSTANT
        assert is_reminder_due(occ, local(2024, 1, 8, 8, 0))
        assert not is_reminder_due(occ, local(2024, 1, 8, 9, 1))


class TestReminderScannerTick:
    def test_tick_when_offset_out_of_range_then_other_tasks_still_fire(self, make_task):
        fired = []
        tasks = [
            make_task("big", reminder_minutes=10**10),
            make_task("normal", start=local(2024, 1, 8, 12, 0), end=local(2024, 1, 8, 13, 0)),
        ]
        scanner = _scanner(tasks, fired.append)

        scanner.tick(local(2024, 1, 8, 11, 50))
        assert [o.id for o in fired] == ["normal"]

    def test_tick_when_offset_out_of_range_then_fires_before_start(self, make_task):
        fired = []
        scanner = _scanner([make_task("big", reminder_minutes=10**10)], fired.append)

        scanner.tick(local(2024, 1, 8, 0, 1))
        assert [o.id for o in fired] == ["big"]

    def test_tick_when_before_window_then_nothing_fires(self, make_task):
        fired = []
        scanner = _scanner([make_task()], fired.append)

        assert scanner.tick(local(2024, 1, 8, 8, 44)) == []
        assert fired == []

    def test_tick_when_window_entered_then_fires_exactly_once(self, make_task):
        fired = []
        scanner = _scanner([make_task("t1")], fired.append)

        scanner.tick(local(2024, 1, 8, 8, 45))
        scanner.tick(local(2024, 1, 8, 8, 50))
        scanner.tick(local(2024, 1, 8, 9, 0, 30))

        assert [o.id for o in fired] == ["t1"]
        assert "t1" in scanner.notified

    def test_tick_when_inside_grace_period_then_late_reminder_fires(self, make_task):
        fired = []
        scanner = _scanner([make_task()], fired.append)

        scanner.tick(local(2024, 1, 8, 9, 0, 30))
        assert len(fired) == 1

    def test_tick_when_grace_period_elapsed_then_never_fires(self, make_task):
        fired = []
        scanner = _scanner([make_task()], fired.append)

        scanner.tick(local(2024, 1, 8, 9, 1))
        assert fired == []

    def test_tick_when_task_completed_then_skipped(self, make_task):
        fired = []
        scanner = _scanner([make_task(completed=True)], fired.append)

        scanner.tick(local(2024, 1, 8, 8, 50))
        assert fired == []
        assert len(scanner.notified) == 0

    def test_tick_when_recurring_then_each_occurrence_fires_once(self, make_task):
        fired = []
        scanner = _scanner([make_task("s", frequency="Daily")], fired.append)

        for day in (8, 8, 9, 9, 10):
            scanner.tick(local(2024, 1, day, 8, 50))

        assert [o.id for o in fired] == [
            "s::2024-01-08T17:00:00.000Z",
            "s::2024-01-09T17:00:00.000Z",
            "s::2024-01-10T17:00:00.000Z",
        ]

    def test_tick_when_occurrence_completed_then_only_that_one_skipped(self, make_task):
        fired = []
        task = make_task("s", frequency="Daily", completed_instances=["2024-01-09T17:00:00.000Z"])
        scanner = _scanner([task], fired.append)

        scanner.tick(local(2024, 1, 9, 8, 50))
        scanner.tick(local(2024, 1, 10, 8, 50))

        assert [o.id for o in fired] == ["s::2024-01-10T17:00:00.000Z"]

    def test_tick_when_occurrence_starts_after_midnight_then_waits_for_its_day(self, make_task):
        fired = []
        task = make_task(start=local(2024, 1, 9, 0, 5), end=local(2024, 1, 9, 1, 0))
        scanner = _scanner([task], fired.append)

        scanner.tick(local(2024, 1, 8, 23, 55))
        assert fired == []

        scanner.tick(local(2024, 1, 9, 0, 0))
        assert len(fired) == 1

    def test_tick_reads_latest_task_list(self, make_task):
        fired = []
        tasks = []
        scanner = ReminderScanner(lambda: tasks, fired.append)

        scanner.tick(local(2024, 1, 8, 8, 50))
        tasks.append(make_task())
        scanner.tick(local(2024, 1, 8, 8, 51))

        assert len(fired) == 1

    def test_tick_when_sync_notifier_raises_then_logged_and_still_marked(self, make_task, caplog):
        def boom(_occurrence):
            raise RuntimeError("speaker unplugged")

        scanner = _scanner([make_task("t1")], boom)

        with caplog.at_level(logging.WARNING, logger="chronoplan.domain.reminders"):
            due = scanner.tick(local(2024, 1, 8, 8, 50))

        assert [o.id for o in due] == ["t1"]
        assert "t1" in scanner.notified
        assert "Reminder notifier failed" in caplog.text

    def test_tick_when_async_notifier_without_loop_then_skipped_with_warning(self, make_task, caplog):
        async def notify(_occurrence):
            raise AssertionError("must not run")

        scanner = _scanner([make_task()], notify)

        with caplog.at_level(logging.WARNING, logger="chronoplan.domain.reminders"):
            scanner.tick(local(2024, 1, 8, 8, 50))

        assert "No running event loop" in caplog.text


class TestReminderScannerAsync:
    async def test_tick_when_async_notifier_then_scheduled_on_loop(self, make_task):
        fired = []

        async def notify(occurrence):
            fired.append(occurrence.id)

        scanner = _scanner([make_task("t1")], notify)
        scanner.tick(local(2024, 1, 8, 8, 50))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert fired == ["t1"]

    async def test_tick_when_async_notifier_fails_then_logged(self, make_task, caplog):
        async def notify(_occurrence):
            raise RuntimeError("push service down")

        scanner = _scanner([make_task()], notify)
        with caplog.at_level(logging.WARNING, logger="chronoplan.domain.reminders"):
            scanner.tick(local(2024, 1, 8, 8, 50))
            await asyncio.sleep(0)
            await asyncio.sleep(0)

        assert "Async reminder notifier failed" in caplog.text

    async def test_start_stop_then_background_loop_fires_once(self, make_task):
        fired = []
        scanner = _scanner(
            [make_task()],
            fired.append,
            interval_seconds=0.01,
            clock=lambda: local(2024, 1, 8, 8, 50),
        )

        await scanner.start()
        assert scanner.is_running
        await asyncio.sleep(0.05)
        await scanner.stop()

        assert not scanner.is_running
        assert len(fired) == 1

    async def test_stop_when_never_started_then_noop(self, make_task):
        scanner = _scanner([make_task()], lambda _o: None)
        await scanner.stop()
        assert not scanner.is_running

    async def test_start_twice_then_single_loop(self, make_task):
        scanner = _scanner([], lambda _o: None, interval_seconds=0.01)
        await scanner.start()
        first = scanner._scan_task
        await scanner.start()

        assert scanner._scan_task is first
        await scanner.stop()


class TestNotifiedRegistry:
    def test_prune_when_entry_older_than_retention_then_removed(self, make_task):
        occ = _occurrence(make_task)
        registry = NotifiedRegistry(timedelta(hours=24))
        registry.add(occ)

        assert registry.prune(local(2024, 1, 9, 8, 59)) == 0
        assert occ.id in registry
        assert registry.prune(local(2024, 1, 9, 9, 1)) == 1
        assert occ.id not in registry

    def test_retention_below_grace_then_clamped(self):
        registry = NotifiedRegistry(timedelta(seconds=1))
        assert registry.retention == REMINDER_GRACE

    def test_scanner_pruning_never_refires_closed_window(self, make_task):
        fired = []
        scanner = _scanner([make_task()], fired.append, retention=timedelta(seconds=60))

        scanner.tick(local(2024, 1, 8, 8, 50))
        scanner.tick(local(2024, 1, 8, 9, 5))

        assert len(fired) == 1
        assert len(scanner.notified) == 0


class TestReminderInbox:
    def test_call_then_drain_returns_events_once(self, make_task):
        inbox = ReminderInbox()
        inbox(_occurrence(make_task, title="Dentist"))

        assert len(inbox) == 1
        events = inbox.drain()
        assert events[0]["occurrence"]["title"] == "Dentist"
        assert events[0]["firedAt"].endswith("Z")
        assert inbox.drain() == []

    def test_maxlen_then_oldest_dropped(self, make_task):
        inbox = ReminderInbox(maxlen=2)
        for title in ("a", "b", "c"):
            inbox(_occurrence(make_task, title=title))

        assert [e["occurrence"]["title"] for e in inbox.drain()] == ["b", "c"]

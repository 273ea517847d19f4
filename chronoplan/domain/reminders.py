"""Time-driven reminder scanner.

Every tick re-expands today's local window and fires a reminder the first
time ``now`` enters ``[start - reminder_minutes, start + 60s)`` for an
occurrence that is not completed. Fired occurrence ids are remembered in a
process-lifetime registry; a restart re-arms the current day.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Sequence
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Union

from chronoplan.core.timezone_utils import UTC, format_instant, now_utc, today_window

from .models import Occurrence, Task
from .recurrence import MAX_ITERATIONS, expand_occurrences

logger = logging.getLogger(__name__)

REMINDER_GRACE = timedelta(seconds=60)
DEFAULT_SCAN_INTERVAL_SECONDS = 10
DEFAULT_RETENTION = timedelta(hours=24)
EARLIEST_INSTANT = datetime.min.replace(tzinfo=UTC)

Notifier = Callable[[Occurrence], Union[None, Awaitable[None]]]
TaskSource = Callable[[], Sequence[Task]]


def reminder_instant(occurrence: Occurrence) -> datetime:
    """Instant the reminder opens; offsets reaching before year 1 open at the earliest instant."""
    try:
        return occurrence.start - timedelta(minutes=occurrence.reminder_minutes)
    except OverflowError:
        return EARLIEST_INSTANT


def is_reminder_due(occurrence: Occurrence, now: datetime) -> bool:
    """True while ``now`` is inside the occurrence's reminder window."""
    return reminder_instant(occurrence) <= now < occurrence.start + REMINDER_GRACE


class NotifiedRegistry:
    """Occurrence ids that already fired, keyed to their start instant.

    Entries whose occurrence started more than ``retention`` before ``now``
    are evicted by :meth:`prune`; by then the reminder window is long closed
    so eviction can never cause a second reminder.
    """

    def __init__(self, retention: timedelta = DEFAULT_RETENTION) -> None:
        self.retention = max(retention, REMINDER_GRACE)
        self._entries: dict[str, datetime] = {}

    def __contains__(self, occurrence_id: object) -> bool:
        return occurrence_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, occurrence: Occurrence) -> None:
        self._entries[occurrence.id] = occurrence.start

    def prune(self, now: datetime) -> int:
        """Drop stale entries and return how many were removed."""
        cutoff = now - self.retention
        stale = [k for k, start in self._entries.items() if start < cutoff]
        for k in stale:
            del self._entries[k]
        return len(stale)


class ReminderInbox:
    """Bounded in-memory notifier that the HTTP API drains."""

    def __init__(self, maxlen: int = 100) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=maxlen)

    def __call__(self, occurrence: Occurrence) -> None:
        logger.info(
            "Reminder: %r starts at %s", occurrence.title, format_instant(occurrence.start)
        )
        self._events.append(
            {
                "occurrence": occurrence.to_api_dict(),
                "firedAt": format_instant(now_utc()),
            }
        )

    def __len__(self) -> int:
        return len(self._events)

    def drain(self) -> list[dict[str, Any]]:
        events = list(self._events)
        self._events.clear()
        return events


class ReminderScanner:
    """Periodic reminder check over today's occurrences."""

    def __init__(
        self,
        task_source: TaskSource,
        notifier: Notifier,
        *,
        interval_seconds: float = DEFAULT_SCAN_INTERVAL_SECONDS,
        retention: timedelta = DEFAULT_RETENTION,
        max_iterations: int = MAX_ITERATIONS,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.task_source = task_source
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self.max_iterations = max_iterations
        self.notified = NotifiedRegistry(retention)
        self._clock = clock
        self._scan_task: Optional[asyncio.Task[None]] = None
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def is_running(self) -> bool:
        return self._scan_task is not None and not self._scan_task.done()

    def due_reminders(self, now: datetime) -> list[Occurrence]:
        """Select occurrences whose reminder fires at ``now`` and mark them notified."""
        self.notified.prune(now)
        window_start, window_end = today_window(now)
        occurrences = expand_occurrences(
            self.task_source(), window_start, window_end, max_iterations=self.max_iterations
        )

        due: list[Occurrence] = []
        for occurrence in occurrences:
            if occurrence.completed or occurrence.id in self.notified:
                continue
            if is_reminder_due(occurrence, now):
                self.notified.add(occurrence)
                due.append(occurrence)
        return due

    def tick(self, now: datetime) -> list[Occurrence]:
        """Run one scan at ``now`` and notify every newly due occurrence.

        Returns:
            The occurrences reminded during this tick.
        """
        due = self.due_reminders(now)
        for occurrence in due:
            self._notify(occurrence)
        if due:
            logger.debug("Reminder tick at %s fired %d reminder(s)", now, len(due))
        return due

    def _notify(self, occurrence: Occurrence) -> None:
        try:
            result = self.notifier(occurrence)
        except Exception:
            logger.warning("Reminder notifier failed for %s", occurrence.id, exc_info=True)
            return

        if not inspect.isawaitable(result):
            return

        # Async notifiers run fire-and-forget so a slow one never stalls the next tick.
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop for async notifier of %s", occurrence.id)
            if inspect.iscoroutine(result):
                result.close()
            return
        task = asyncio.ensure_future(result, loop=loop)
        self._pending.add(task)
        task.add_done_callback(self._on_notifier_done)

    def _on_notifier_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Async reminder notifier failed: %s", exc)

    async def start(self) -> None:
        """Start the background scan loop."""
        if not self.is_running:
            self._scan_task = asyncio.create_task(self._scan_loop())
            logger.debug("Reminder scanner started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Stop the scan loop; no tick runs after this returns."""
        if self._scan_task and not self._scan_task.done():
            self._scan_task.cancel()
            try:
                await self._scan_task
            except asyncio.CancelledError:
                pass
            logger.debug("Reminder scanner stopped")
        self._scan_task = None

        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()

    async def _scan_loop(self) -> None:
        while True:
            try:
                self.tick(self._clock())
            except Exception:
                logger.exception("Reminder scan failed")
            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                logger.debug("Reminder scan loop cancelled")
                break

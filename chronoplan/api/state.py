"""Shared server state: the task store, its write lock and the reminder inbox."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional, TypeVar

from chronoplan.core.config_loader import Config
from chronoplan.domain.models import Task
from chronoplan.domain.reminders import ReminderInbox, ReminderScanner
from chronoplan.storage.task_store import TaskStore

T = TypeVar("T")


@dataclass
class PlannerState:
    """Everything request handlers and the reminder scanner share."""

    store: TaskStore
    config: Config = field(default_factory=Config)
    inbox: ReminderInbox = field(default_factory=ReminderInbox)
    scanner: Optional[ReminderScanner] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def tasks(self) -> list[Task]:
        return self.store.tasks

    async def mutate(self, operation: Callable[[list[Task]], tuple[Sequence[Task], T]]) -> T:
        """Apply a whole-list operation and persist the result.

        ``operation`` receives the current list and returns ``(new_list, result)``.
        Writes are serialized; exceptions leave the stored list unchanged.
        """
        async with self.lock:
            new_tasks, result = operation(self.store.tasks)
            self.store.save(new_tasks)
            return result

    def build_scanner(self) -> ReminderScanner:
        """Create the reminder scanner wired to this state's store and inbox."""
        self.scanner = ReminderScanner(
            self.tasks,
            self.inbox,
            interval_seconds=self.config.reminder_interval_seconds,
            retention=timedelta(hours=self.config.notified_retention_hours),
            max_iterations=self.config.max_iterations,
        )
        return self.scanner

"""JSON-backed task list store with atomic writes."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from chronoplan.domain.models import Task
from chronoplan.exceptions import TaskStoreError

logger = logging.getLogger(__name__)


class TaskStore:
    """Persistent task list.

    The on-disk format is a JSON array of task records using camelCase
    field names. The in-memory list is replaced as a whole on every save so
    readers always get a complete snapshot.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._tasks: tuple[Task, ...] = ()

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.debug("Could not ensure directory for task store: %s", self._path.parent)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def tasks(self) -> list[Task]:
        """Snapshot of the current task list."""
        return list(self._tasks)

    def load(self) -> list[Task]:
        """Read the task list from disk.

        A missing or unreadable file yields an empty list; individual invalid
        records are skipped with a warning.
        """
        with self._lock:
            if not self._path.exists():
                logger.debug("Task file not found; starting empty: %s", self._path)
                self._tasks = ()
                return []

            try:
                with self._path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
                if not isinstance(data, list):
                    raise ValueError("task file JSON root must be an array")
            except (OSError, ValueError) as exc:
                logger.warning("Failed to read task file %s: %s", self._path, exc)
                self._tasks = ()
                return []

            tasks: list[Task] = []
            for index, record in enumerate(data):
                try:
                    tasks.append(Task.model_validate(record))
                except ValidationError as exc:
                    logger.warning("Skipping invalid task record #%d in %s: %s", index, self._path, exc)

            self._tasks = tuple(tasks)
            logger.info("Loaded %d task(s) from %s", len(tasks), self._path)
            return list(tasks)

    def save(self, tasks: Sequence[Task]) -> None:
        """Replace the task list and persist it.

        Raises:
            TaskStoreError: if the file could not be written; the in-memory
                list is left unchanged.
        """
        with self._lock:
            self._persist(tasks)
            self._tasks = tuple(tasks)
            logger.debug("Saved %d task(s) to %s", len(tasks), self._path)

    def _persist(self, tasks: Sequence[Task]) -> None:
        """Write to a temporary file in the same directory then replace into place."""
        data = [task.to_record() for task in tasks]
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8", suffix=".tmp"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(data, tf, ensure_ascii=False, indent=2)
                tf.flush()
                with contextlib.suppress(OSError):
                    os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise TaskStoreError(f"failed to persist tasks to {self._path}: {exc}") from exc

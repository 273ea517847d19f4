"""Task list operations.

Every operation takes the current task list and returns a new list; series
are frozen models and are replaced, never mutated, so concurrent readers
always see a complete list. Ids may be series ids or occurrence ids; the
series is resolved through the virtual id codec.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from chronoplan.core.timezone_utils import format_instant, parse_instant
from chronoplan.exceptions import TaskNotFoundError, TaskValidationError

from .models import Priority, Task
from .virtual_id import decode

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_MINUTES = 15

# Python attribute name -> persisted (camelCase) key
_ALIASES: dict[str, str] = {
    name: (field.alias or name) for name, field in Task.model_fields.items()
}


def _new_id() -> str:
    return str(uuid.uuid4())


def _record_keys(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Accept snake_case or camelCase keys and return camelCase ones."""
    return {_ALIASES.get(k, k): v for k, v in fields.items()}


def _validate(record: Mapping[str, Any]) -> Task:
    try:
        return Task.model_validate(record)
    except ValidationError as exc:
        raise TaskValidationError(str(exc)) from exc


def _coerce_priority(value: Any) -> Any:
    if isinstance(value, str):
        for priority in Priority:
            if priority.value.lower() == value.strip().lower():
                return priority
    return value


def find_series(tasks: Iterable[Task], task_id: str) -> Task:
    """Return the series addressed by a series or occurrence id.

    Raises:
        TaskNotFoundError: if no such series exists.
    """
    series_id = decode(task_id).series_id
    for task in tasks:
        if task.id == series_id:
            return task
    raise TaskNotFoundError(series_id)


def create_task(tasks: Sequence[Task], fields: Mapping[str, Any]) -> tuple[list[Task], Task]:
    """Add a new series with a fresh id and ``completed=False``.

    Raises:
        TaskValidationError: if the fields do not form a valid task.
    """
    record = _record_keys(fields)
    record["id"] = _new_id()
    record["completed"] = False
    task = _validate(record)
    logger.debug("Created task %s (%r)", task.id, task.title)
    return [*tasks, task], task


def update_series(
    tasks: Sequence[Task], task_id: str, fields: Mapping[str, Any]
) -> tuple[list[Task], Task]:
    """Edit the series addressed by ``task_id``; the series id never changes.

    Raises:
        TaskNotFoundError: if the series does not exist.
        TaskValidationError: if the merged fields are invalid.
    """
    series = find_series(tasks, task_id)
    record = series.to_record()
    record.update(_record_keys(fields))
    record["id"] = series.id
    updated = _validate(record)
    return [updated if t.id == series.id else t for t in tasks], updated


def delete_series(tasks: Sequence[Task], task_id: str) -> list[Task]:
    """Remove the whole series, even when addressed through one occurrence.

    Raises:
        TaskNotFoundError: if the series does not exist.
    """
    series = find_series(tasks, task_id)
    logger.debug("Deleting series %s", series.id)
    return [t for t in tasks if t.id != series.id]


def toggle_completion(tasks: Sequence[Task], task_id: str) -> tuple[list[Task], Task]:
    """Flip completion of one occurrence or of a non-recurring task.

    An occurrence id toggles its instant in ``completed_instances`` and leaves
    other occurrences and the series ``completed`` flag untouched. A plain
    series id toggles ``completed`` of a non-recurring task.

    Raises:
        TaskNotFoundError: if the series does not exist.
        TaskValidationError: for a plain id of a recurring series, whose
            ``completed`` flag no view reads.
    """
    decoded = decode(task_id)
    series = find_series(tasks, decoded.series_id)

    if decoded.instance:
        try:
            instance = format_instant(parse_instant(decoded.instance))
        except ValueError:
            instance = decoded.instance
        if instance in series.completed_instances:
            instances = tuple(i for i in series.completed_instances if i != instance)
        else:
            instances = (*series.completed_instances, instance)
        updated = series.model_copy(update={"completed_instances": instances})
    elif series.is_recurring:
        raise TaskValidationError(
            f"series {series.id!r} is recurring; toggle one of its occurrences instead"
        )
    else:
        updated = series.model_copy(update={"completed": not series.completed})

    return [updated if t.id == series.id else t for t in tasks], updated


def import_tasks(
    items: Iterable[Mapping[str, Any]],
    *,
    default_reminder_minutes: int = DEFAULT_REMINDER_MINUTES,
) -> list[Task]:
    """Admit externally produced partial tasks (LLM extraction, voice transcript).

    Each item gets a fresh series id, ``completed=False``, an empty
    description when absent and ``default_reminder_minutes`` when its
    reminder offset is absent or zero. Import is all-or-nothing.

    Raises:
        TaskValidationError: if any item is not a mapping or lacks required fields.
    """
    imported: list[Task] = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise TaskValidationError(f"imported task #{index} is not an object")
        fields = _record_keys(item)
        record = {
            "id": _new_id(),
            "title": fields.get("title"),
            "description": fields.get("description") or "",
            "start": fields.get("start"),
            "end": fields.get("end"),
            "reminderMinutes": fields.get("reminderMinutes") or default_reminder_minutes,
            "recurrence": fields.get("recurrence"),
            "completed": False,
        }
        priority = _coerce_priority(fields.get("priority"))
        if priority is not None:
            record["priority"] = priority
        try:
            imported.append(_validate(record))
        except TaskValidationError as exc:
            raise TaskValidationError(f"imported task #{index}: {exc}") from exc

    logger.info("Imported %d task(s)", len(imported))
    return imported


def append_tasks(tasks: Sequence[Task], new_tasks: Iterable[Task]) -> list[Task]:
    return [*tasks, *new_tasks]

"""Domain engine: task models, occurrence expansion, identity, conflicts and reminders."""

from .conflicts import conflict_flags, conflicting_ids, has_conflict
from .models import Occurrence, Priority, RecurrenceConfig, RecurrenceFrequency, Task
from .recurrence import MAX_ITERATIONS, expand_occurrences, next_occurrence_start
from .reminders import ReminderInbox, ReminderScanner
from .virtual_id import OccurrenceKey, decode, encode

__all__ = [
    "MAX_ITERATIONS",
    "Occurrence",
    "OccurrenceKey",
    "Priority",
    "RecurrenceConfig",
    "RecurrenceFrequency",
    "ReminderInbox",
    "ReminderScanner",
    "Task",
    "conflict_flags",
    "conflicting_ids",
    "decode",
    "encode",
    "expand_occurrences",
    "has_conflict",
    "next_occurrence_start",
]

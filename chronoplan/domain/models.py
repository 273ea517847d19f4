"""Data models for chronoplan tasks and their materialized occurrences."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from chronoplan.core.timezone_utils import ensure_aware, format_instant, parse_instant

from .virtual_id import SEPARATOR, OccurrenceKey


class Priority(str, Enum):
    """Task priority."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RecurrenceFrequency(str, Enum):
    """How often a series repeats."""

    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


# Stored records use the camelCase field names of the persisted task list.
_RECORD_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _canonical_instant(value: str) -> str:
    try:
        return format_instant(parse_instant(value))
    except (ValueError, OverflowError):
        # Unparseable entries never match an occurrence; keep them verbatim.
        return value


class RecurrenceConfig(BaseModel):
    """Recurrence rule of a series."""

    frequency: RecurrenceFrequency = RecurrenceFrequency.NONE
    interval: int = Field(default=1, description="Step multiplier; non-positive values act as 1")
    until: Optional[datetime] = Field(default=None, description="Last instant a start may fall on")

    model_config = _RECORD_CONFIG

    @field_validator("interval", mode="before")
    @classmethod
    def _default_interval(cls, value: Any) -> Any:
        return 1 if value is None else value

    @field_validator("until")
    @classmethod
    def _aware_until(cls, value: Optional[datetime]) -> Optional[datetime]:
        return None if value is None else ensure_aware(value)

    @field_serializer("until", when_used="unless-none")
    def serialize_until(self, dt: datetime) -> str:
        return format_instant(dt)


class Task(BaseModel):
    """A persisted task definition (series), possibly recurring."""

    id: str = Field(..., min_length=1, description="Series id")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Free text notes")

    start: datetime = Field(..., description="Start of the canonical occurrence")
    end: datetime = Field(..., description="End of the canonical occurrence")

    priority: Priority = Field(default=Priority.MEDIUM)
    reminder_minutes: int = Field(default=15, ge=0, description="Reminder offset before start")
    completed: bool = Field(default=False, description="Completion of a non-recurring task")

    recurrence: Optional[RecurrenceConfig] = None
    completed_instances: tuple[str, ...] = Field(
        default=(), description="Start instants of completed occurrences of a recurring series"
    )

    model_config = _RECORD_CONFIG

    @field_validator("id")
    @classmethod
    def _id_without_separator(cls, value: str) -> str:
        if SEPARATOR in value:
            raise ValueError(f"id must not contain {SEPARATOR!r}")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("start", "end")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @field_validator("completed_instances", mode="before")
    @classmethod
    def _canonical_instances(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple, set, frozenset)):
            return tuple(_canonical_instant(v) if isinstance(v, str) else v for v in value)
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> Task:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @field_serializer("start", "end")
    def serialize_instant(self, dt: datetime) -> str:
        return format_instant(dt)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None and self.recurrence.frequency != RecurrenceFrequency.NONE

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase record shape."""
        return self.model_dump(mode="json", by_alias=True)


class Occurrence(BaseModel):
    """One concrete materialization of a series. Never persisted."""

    series_id: str
    instance_start: Optional[datetime] = Field(
        default=None, description="Occurrence start for recurring series; None for a single task"
    )

    title: str
    description: str = ""
    start: datetime
    end: datetime
    priority: Priority = Priority.MEDIUM
    reminder_minutes: int = 15
    completed: bool = False
    recurrence: Optional[RecurrenceConfig] = None

    model_config = _RECORD_CONFIG

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None and self.recurrence.frequency != RecurrenceFrequency.NONE

    @property
    def key(self) -> OccurrenceKey:
        return OccurrenceKey(self.series_id, self.instance_start)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return self.key.to_string()

    @field_serializer("start", "end")
    def serialize_instant(self, dt: datetime) -> str:
        return format_instant(dt)

    @field_serializer("instance_start", when_used="unless-none")
    def serialize_instance_start(self, dt: datetime) -> str:
        return format_instant(dt)

    @classmethod
    def for_series(cls, task: Task) -> Occurrence:
        """The single occurrence of a non-recurring task, or the series-level view of any task."""
        return cls(
            series_id=task.id,
            title=task.title,
            description=task.description,
            start=task.start,
            end=task.end,
            priority=task.priority,
            reminder_minutes=task.reminder_minutes,
            completed=task.completed,
            recurrence=task.recurrence,
        )

    @classmethod
    def for_instance(
        cls, task: Task, start: datetime, end: datetime, completed: bool
    ) -> Occurrence:
        """One occurrence of a recurring series."""
        return cls(
            series_id=task.id,
            instance_start=start,
            title=task.title,
            description=task.description,
            start=start,
            end=end,
            priority=task.priority,
            reminder_minutes=task.reminder_minutes,
            completed=completed,
            recurrence=task.recurrence,
        )

    def to_api_dict(self) -> dict[str, Any]:
        """Serialize for rendering collaborators (camelCase, flat ``id``)."""
        return self.model_dump(mode="json", by_alias=True)

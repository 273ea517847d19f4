"""Virtual identity codec for materialized occurrences.

Inside the engine an occurrence is addressed by an :class:`OccurrenceKey`
(series id plus the occurrence start instant, or no instant for a
non-recurring series). The flat ``"<series>::<instant>"`` string is only the
serialization used where a single identifier is required: list keys, URLs
and the ``completedInstances`` lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple, Optional

from chronoplan.core.timezone_utils import format_instant, parse_instant

SEPARATOR = "::"


class DecodedId(NamedTuple):
    """Result of :func:`decode`: the series id and the raw instant string, if any."""

    series_id: str
    instance: Optional[str]


def encode(series_id: str, instance_start: datetime) -> str:
    """Build the composite id of one occurrence of a recurring series.

    Raises:
        ValueError: if ``series_id`` contains the separator and could not be decoded back.
    """
    if SEPARATOR in series_id:
        raise ValueError(f"series id {series_id!r} must not contain {SEPARATOR!r}")
    return f"{series_id}{SEPARATOR}{format_instant(instance_start)}"


def decode(value: str) -> DecodedId:
    """Split a flat id on the first separator.

    A value without the separator is a plain series id: a non-recurring
    task's single occurrence, or the series itself. Never raises.
    """
    series_id, sep, instance = value.partition(SEPARATOR)
    if not sep:
        return DecodedId(value, None)
    return DecodedId(series_id, instance)


def series_id_of(value: str) -> str:
    """Return the series part of a flat id."""
    return decode(value).series_id


@dataclass(frozen=True)
class OccurrenceKey:
    """Tagged identity of an occurrence."""

    series_id: str
    instance_start: Optional[datetime] = None

    @property
    def is_instance(self) -> bool:
        return self.instance_start is not None

    def to_string(self) -> str:
        if self.instance_start is None:
            return self.series_id
        return encode(self.series_id, self.instance_start)

    @classmethod
    def parse(cls, value: str) -> OccurrenceKey:
        """Parse a flat id.

        Raises:
            ValueError: if an instant part is present but is not an ISO-8601 timestamp.
        """
        decoded = decode(value)
        if decoded.instance is None:
            return cls(decoded.series_id)
        return cls(decoded.series_id, parse_instant(decoded.instance))

    def __str__(self) -> str:
        return self.to_string()

"""Small helpers shared by chronoplan tests."""

from datetime import datetime


def local(*args: int) -> datetime:
    """Aware datetime for a local wall-clock reading (America/Los_Angeles in tests)."""
    return datetime(*args).astimezone()

"""Persistence adapters for the task list."""

from .task_store import TaskStore

__all__ = ["TaskStore"]

"""Route registration for the chronoplan API."""

from .occurrence_routes import register_occurrence_routes
from .task_routes import register_task_routes

__all__ = ["register_occurrence_routes", "register_task_routes"]

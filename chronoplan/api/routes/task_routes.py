"""Task (series) routes for chronoplan."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from chronoplan.api.state import PlannerState
from chronoplan.domain import task_actions
from chronoplan.exceptions import TaskNotFoundError, TaskStoreError, TaskValidationError

logger = logging.getLogger(__name__)


def error_response(exc: Exception) -> web.Response:
    """Map chronoplan exceptions to JSON error responses."""
    if isinstance(exc, TaskNotFoundError):
        return web.json_response({"error": str(exc)}, status=404)
    if isinstance(exc, TaskValidationError):
        return web.json_response({"error": str(exc)}, status=400)
    if isinstance(exc, TaskStoreError):
        logger.error("Task store failure: %s", exc)
        return web.json_response({"error": "failed to save tasks"}, status=500)
    raise exc


async def read_json(request: web.Request) -> Any:
    """Parse a JSON body.

    Raises:
        TaskValidationError: if the body is not valid JSON.
    """
    try:
        return await request.json()
    except ValueError as exc:
        raise TaskValidationError("invalid json") from exc


def register_task_routes(app: web.Application, state: PlannerState) -> None:
    """Register task routes.

    Args:
        app: aiohttp web application
        state: Shared planner state
    """

    async def list_tasks(_request: web.Request) -> web.Response:
        tasks = state.tasks()
        return web.json_response({"tasks": [t.to_record() for t in tasks]})

    async def create_task(request: web.Request) -> web.Response:
        try:
            body = await read_json(request)
            if not isinstance(body, dict):
                raise TaskValidationError("task body must be an object")
            task = await state.mutate(lambda tasks: task_actions.create_task(tasks, body))
        except (TaskValidationError, TaskStoreError) as exc:
            return error_response(exc)
        logger.info("Created task %s", task.id)
        return web.json_response({"task": task.to_record()}, status=201)

    async def update_task(request: web.Request) -> web.Response:
        task_id = request.match_info["task_id"]
        try:
            body = await read_json(request)
            if not isinstance(body, dict):
                raise TaskValidationError("task body must be an object")
            task = await state.mutate(
                lambda tasks: task_actions.update_series(tasks, task_id, body)
            )
        except (TaskNotFoundError, TaskValidationError, TaskStoreError) as exc:
            return error_response(exc)
        return web.json_response({"task": task.to_record()})

    async def delete_task(request: web.Request) -> web.Response:
        task_id = request.match_info["task_id"]

        def _delete(tasks: list) -> tuple[list, str]:
            remaining = task_actions.delete_series(tasks, task_id)
            return remaining, task_actions.find_series(tasks, task_id).id

        try:
            series_id = await state.mutate(_delete)
        except (TaskNotFoundError, TaskStoreError) as exc:
            return error_response(exc)
        logger.info("Deleted series %s", series_id)
        return web.json_response({"deleted": series_id})

    async def import_tasks(request: web.Request) -> web.Response:
        try:
            body = await read_json(request)
            items = body.get("tasks") if isinstance(body, dict) else body
            if not isinstance(items, list):
                raise TaskValidationError("expected a list of tasks")
            imported = task_actions.import_tasks(
                items, default_reminder_minutes=state.config.default_reminder_minutes
            )
            await state.mutate(lambda tasks: (task_actions.append_tasks(tasks, imported), None))
        except (TaskValidationError, TaskStoreError) as exc:
            return error_response(exc)
        return web.json_response({"tasks": [t.to_record() for t in imported]}, status=201)

    app.router.add_get("/api/tasks", list_tasks)
    app.router.add_post("/api/tasks", create_task)
    app.router.add_post("/api/tasks/import", import_tasks)
    app.router.add_put("/api/tasks/{task_id}", update_task)
    app.router.add_delete("/api/tasks/{task_id}", delete_task)

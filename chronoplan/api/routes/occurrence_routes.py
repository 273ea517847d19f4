"""Occurrence and reminder routes for chronoplan."""

from __future__ import annotations

import logging
from datetime import date

from aiohttp import web

from chronoplan.api.routes.task_routes import error_response
from chronoplan.api.state import PlannerState
from chronoplan.core.timezone_utils import format_instant, now_utc, to_local_wall
from chronoplan.domain import task_actions
from chronoplan.domain.views import ViewMode, annotate_conflicts, view_window, visible_occurrences
from chronoplan.exceptions import TaskNotFoundError, TaskStoreError, TaskValidationError

logger = logging.getLogger(__name__)


def register_occurrence_routes(app: web.Application, state: PlannerState) -> None:
    """Register occurrence and reminder routes.

    Args:
        app: aiohttp web application
        state: Shared planner state
    """

    async def list_occurrences(request: web.Request) -> web.Response:
        """Occurrences of a day/week/list view with a conflict flag each.

        Query parameters: ``view`` (day, week, list), ``date`` (YYYY-MM-DD,
        defaults to today) and ``q`` (search text).
        """
        try:
            mode = ViewMode.parse(request.query.get("view"))
        except ValueError as exc:
            return web.json_response({"error": str(exc)}, status=400)

        raw_date = request.query.get("date")
        try:
            anchor = date.fromisoformat(raw_date) if raw_date else to_local_wall(now_utc()).date()
        except ValueError:
            return web.json_response({"error": f"invalid date {raw_date!r}"}, status=400)

        occurrences = visible_occurrences(
            state.tasks(),
            mode,
            anchor,
            request.query.get("q", ""),
            max_iterations=state.config.max_iterations,
        )
        payload: dict = {
            "view": mode.value,
            "date": anchor.isoformat(),
            "occurrences": [
                {**occ.to_api_dict(), "conflict": conflict}
                for occ, conflict in annotate_conflicts(occurrences, mode)
            ],
        }
        if mode != ViewMode.LIST:
            window_start, window_end = view_window(mode, anchor)
            payload["windowStart"] = format_instant(window_start)
            payload["windowEnd"] = format_instant(window_end)

        logger.debug("%s view for %s: %d occurrence(s)", mode.value, anchor, len(occurrences))
        return web.json_response(payload)

    async def toggle_occurrence(request: web.Request) -> web.Response:
        occurrence_id = request.match_info["occurrence_id"]
        try:
            task = await state.mutate(
                lambda tasks: task_actions.toggle_completion(tasks, occurrence_id)
            )
        except (TaskNotFoundError, TaskStoreError, TaskValidationError) as exc:
            return error_response(exc)
        return web.json_response({"task": task.to_record()})

    async def drain_reminders(_request: web.Request) -> web.Response:
        return web.json_response({"reminders": state.inbox.drain()})

    app.router.add_get("/api/occurrences", list_occurrences)
    app.router.add_post("/api/occurrences/{occurrence_id}/toggle", toggle_occurrence)
    app.router.add_get("/api/reminders", drain_reminders)

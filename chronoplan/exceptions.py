"""Exception hierarchy for chronoplan's boundary layers.

The expansion, identity and conflict engine is total over its inputs and
raises none of these; they are used by task actions, persistence and the
HTTP layer to map failures to proper status codes.
"""


class ChronoPlanError(Exception):
    """Base exception for chronoplan errors."""


class TaskNotFoundError(ChronoPlanError):
    """No series exists for the given series or occurrence id.

    Should result in HTTP 404 Not Found response.
    """

    def __init__(self, task_id: str) -> None:
        super().__init__(f"task {task_id!r} not found")
        self.task_id = task_id


class TaskValidationError(ChronoPlanError):
    """Task fields are missing or invalid.

    Raised when:
    - A created or imported task lacks required fields (title, start, end)
    - ``end`` is not after ``start``
    - A request body is not the expected shape

    Should result in HTTP 400 Bad Request response.
    """


class TaskStoreError(ChronoPlanError):
    """Persisting the task list failed.

    Should result in HTTP 500 Internal Server Error response.
    """

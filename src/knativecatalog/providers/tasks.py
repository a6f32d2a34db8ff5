"""Failure-isolated wrapper around one provider sync cycle."""

from __future__ import annotations

import logging
import traceback
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def describe_error(error: BaseException) -> Dict[str, Any]:
    """Loggable view of an error.

    Only the error's name, message, stack and HTTP status are exposed, never
    response bodies or other payload data. The stack covers the error's own
    frames, not its chained causes.
    """
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    return {
        "name": type(error).__name__,
        "message": str(error),
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__, chain=False)),
        "status": status,
    }


class ScheduledSyncTask:
    """Runs one sync cycle per scheduler tick.

    ``execute()`` never raises: fetch, mapping and submission failures are
    logged and the cycle ends, leaving the next tick unaffected.
    """

    def __init__(
        self,
        task_id: str,
        run: Callable[[], Awaitable[None]],
        target: str,
        task_logger: Optional[logging.Logger] = None,
    ):
        self.task_id = task_id
        self._run = run
        self.target = target
        self.logger = task_logger or logger

    async def execute(self) -> None:
        try:
            await self._run()
        except Exception as e:
            error = describe_error(e)
            self.logger.error(
                f"Error while fetching Knative event types from {self.target}: "
                f"{error['name']}: {error['message']}"
                + (f" (status {error['status']})" if error["status"] is not None else ""),
                extra={"task_id": self.task_id, "error": error},
            )
            return
        self.logger.info(f"Task {self.task_id} completed")

    async def __call__(self) -> None:
        await self.execute()


__all__ = ["ScheduledSyncTask", "describe_error"]

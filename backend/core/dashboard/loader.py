import asyncio
import logging
from typing import Any, Dict

from clients.base import DashboardService, ServiceError

logger = logging.getLogger(__name__)

class DashboardLoader:
    """
    Loads the dashboard for a report, creating it when it does not exist yet.

    - fresh=True (just handed off from the upload workflow): create directly.
    - otherwise GET first; only a 404 falls back to create, any other failure
      is raised as-is.

    Concurrent loads of the same file_id share one in-flight operation, so a
    single process never races itself into two creates. Separate processes
    still can; the backend keys dashboard creation by file_id.
    """

    def __init__(self, service: DashboardService):
        self.service = service
        self._inflight: Dict[str, asyncio.Task] = {}

    async def load(self, file_id: str, fresh: bool = False) -> Dict[str, Any]:
        if not file_id:
            raise ServiceError("file_id is required", 400)

        task = self._inflight.get(file_id)
        if task is None:
            task = asyncio.create_task(self._load(file_id, fresh))
            self._inflight[file_id] = task
            task.add_done_callback(lambda t: self._settle(file_id, t))
        return await asyncio.shield(task)

    def _settle(self, file_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(file_id) is task:
            del self._inflight[file_id]
        # every waiter may have been cancelled; mark the error as retrieved
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Dashboard load for {file_id} failed: {task.exception()}")

    async def _load(self, file_id: str, fresh: bool) -> Dict[str, Any]:
        if fresh:
            logger.info(f"Creating dashboard for freshly analyzed report {file_id}")
            return await self.service.create_dashboard(file_id)

        try:
            return await self.service.fetch_dashboard(file_id)
        except ServiceError as e:
            if e.status_code != 404:
                raise
            logger.info(f"No dashboard yet for {file_id}; creating one")

        return await self.service.create_dashboard(file_id)

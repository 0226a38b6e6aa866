# identity_api/adapters/outbound/persistence/task_queue.py

import asyncio
import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from identity_api.adapters.outbound.persistence.repositories.task_repository import task_repository
from identity_api.application.ports.outbound import ITaskQueue

logger = logging.getLogger(__name__)


class AsyncTaskQueue(ITaskQueue):
    """
    Transactional outbox backed by the pending task table.

    A task becomes visible to workers only when the transaction that
    enqueued it commits, together with the state change it follows up on.
    """

    def __init__(self):
        self._wakeup = asyncio.Event()

    def enqueue(self, db: AsyncSession, kind: str, payload: Dict[str, Any]) -> None:
        task = task_repository.add(db, kind, payload)
        logger.info(f"Task {task.id} ({kind}) staged")

    def notify(self) -> None:
        self._wakeup.set()

    async def wait(self, timeout: float) -> bool:
        """
        Sleep until notified or until the timeout elapses.

        Returns:
            True if woken by a notification
        """
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False
        finally:
            self._wakeup.clear()


task_queue = AsyncTaskQueue()

# identity_api/adapters/inbound/worker/task_worker.py

"""
Background worker draining the pending task table.

Tasks are claimed with a lease, so any number of instances can poll the
same table. A task is deleted only after its handler succeeded; a failure
reschedules it with capped exponential backoff. Nothing is ever dropped.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity_api.adapters.configuration.config import settings
from identity_api.adapters.outbound.persistence.database import AsyncSessionLocal
from identity_api.adapters.outbound.persistence.models.base_model import utcnow
from identity_api.adapters.outbound.persistence.repositories.task_repository import task_repository
from identity_api.adapters.outbound.persistence.task_queue import AsyncTaskQueue, task_queue
from identity_api.application.use_cases.cascade_use_cases import AsyncCascadeService

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000


class TaskWorker:

    def __init__(
            self,
            session_factory: Optional[async_sessionmaker] = None,
            queue: Optional[AsyncTaskQueue] = None,
            handler_factory: Callable[[AsyncSession], AsyncCascadeService] = AsyncCascadeService,
            batch_size: int = settings.TASK_BATCH_SIZE,
            lease_seconds: int = settings.TASK_LEASE_SECONDS,
            poll_interval: float = settings.TASK_POLL_INTERVAL,
            backoff_base: float = settings.TASK_BACKOFF_BASE,
            backoff_max: float = settings.TASK_BACKOFF_MAX,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.queue = queue or task_queue
        self.handler_factory = handler_factory
        self.batch_size = batch_size
        self.lease_seconds = lease_seconds
        self.poll_interval = poll_interval
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max

    def backoff(self, attempts: int) -> float:
        """Delay before the next attempt of a task that failed ``attempts`` times."""
        return min(self.backoff_max, self.backoff_base ** attempts)

    async def run_pending(self) -> int:
        """
        Run every task that is due now.

        Returns:
            Number of tasks completed
        """
        async with self.session_factory() as session:
            task_ids = await task_repository.due_ids(session, utcnow(), self.batch_size)

        completed = 0
        for task_id in task_ids:
            if await self._run_task(task_id):
                completed += 1
        return completed

    async def _run_task(self, task_id: str) -> bool:
        async with self.session_factory() as session:
            task = await task_repository.claim(session, task_id, utcnow(), self.lease_seconds)
            if task is None:
                # Another worker holds the lease or already finished it.
                return False
            kind, payload, attempts = task.kind, dict(task.payload or {}), task.attempts

        try:
            async with self.session_factory() as session:
                await self.handler_factory(session).handle(kind, payload)
        except Exception as e:
            attempts += 1
            delay = self.backoff(attempts)
            logger.warning(f"Task {task_id} ({kind}) failed, attempt {attempts}, retrying in {delay:.0f}s: {e!r}")
            async with self.session_factory() as session:
                await task_repository.reschedule(
                    session, task_id, attempts, utcnow() + timedelta(seconds=delay), repr(e)[:MAX_ERROR_LENGTH]
                )
            return False

        async with self.session_factory() as session:
            await task_repository.complete(session, task_id)
        logger.info(f"Task {task_id} ({kind}) completed after {attempts + 1} attempt(s)")
        return True

    async def run_forever(self) -> None:
        """Poll for due tasks until cancelled, waking early when a task is enqueued."""
        logger.info("Task worker started")
        while True:
            try:
                await self.run_pending()
                await self.queue.wait(self.poll_interval)
            except asyncio.CancelledError:
                logger.info("Task worker cancelled")
                break
            except Exception as e:
                logger.exception(f"Error in task worker loop: {e}")
                await asyncio.sleep(self.poll_interval)

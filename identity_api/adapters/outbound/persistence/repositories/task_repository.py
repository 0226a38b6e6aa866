# identity_api/adapters/outbound/persistence/repositories/task_repository.py (async version)

"""
Repository for durable background tasks.

Claims are leases: a worker owns a task until ``locked_until`` passes,
which lets several instances poll the same table and lets a crashed
worker's tasks be picked up again.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import uuid4
from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from identity_api.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from identity_api.adapters.outbound.persistence.models import PendingTask
from identity_api.domain.exceptions import DatabaseOperationException


class AsyncTaskCRUD(AsyncCRUDBase[PendingTask]):

    def add(self, db: AsyncSession, kind: str, payload: Dict[str, Any]) -> PendingTask:
        """
        Stage a task in the caller's transaction. Nothing is committed here.
        """
        task = PendingTask(id=str(uuid4()), kind=kind, payload=payload, attempts=0)
        db.add(task)
        return task

    async def due_ids(self, db: AsyncSession, now: datetime, limit: int) -> List[str]:
        """
        Ids of tasks that are available and not leased by another worker.
        """
        try:
            query = (
                select(PendingTask.id)
                .where(
                    PendingTask.available_at <= now,
                    or_(PendingTask.locked_until.is_(None), PendingTask.locked_until < now),
                )
                .order_by(PendingTask.available_at)
                .limit(limit)
            )
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing due tasks: {str(e)}")
            raise DatabaseOperationException(detail="Error listing due tasks", original_error=e)

    async def claim(self, db: AsyncSession, task_id: str, now: datetime, lease_seconds: int) -> Optional[PendingTask]:
        """
        Take the lease on a task.

        Returns:
            The claimed task, or None if another worker holds it or it is gone
        """
        statement = (
            update(PendingTask)
            .where(
                PendingTask.id == task_id,
                or_(PendingTask.locked_until.is_(None), PendingTask.locked_until < now),
            )
            .values(locked_until=now + timedelta(seconds=lease_seconds))
        )
        if await self._execute_write(db, statement, action="claiming") == 0:
            return None
        return await self.get(db, task_id)

    async def complete(self, db: AsyncSession, task_id: str) -> None:
        await self._execute_write(db, delete(PendingTask).where(PendingTask.id == task_id), action="completing")

    async def reschedule(
            self, db: AsyncSession, task_id: str, attempts: int, available_at: datetime, error: str
    ) -> None:
        """
        Release the lease and make the task available again later.
        """
        statement = (
            update(PendingTask)
            .where(PendingTask.id == task_id)
            .values(attempts=attempts, available_at=available_at, locked_until=None, last_error=error)
        )
        await self._execute_write(db, statement, action="rescheduling")


task_repository = AsyncTaskCRUD(PendingTask)

# identity_api/adapters/outbound/persistence/repositories/base_repository.py (async version)

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.future import select
import logging

from identity_api.adapters.outbound.persistence.models.base_model import Base
from identity_api.domain.exceptions import (
    InvalidArgumentError,
    DatabaseOperationException
)

# Define generic type for SQLAlchemy models
ModelType = TypeVar("ModelType", bound=Base)

# Configure logger
logger = logging.getLogger(__name__)


class AsyncCRUDBase(Generic[ModelType]):
    """
    Async base class for implementing the Repository pattern.

    Provides generic operations that can be used by any entity.
    Includes consistent error handling and logging.

    Attributes:
        model: SQLAlchemy model class
        logger: Configured logger for the class
    """

    def __init__(self, model: Type[ModelType]):
        """
        Initialize the repository with an SQLAlchemy model.

        Args:
            model: SQLAlchemy model class associated with this repository
        """
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Get an entity by primary key, always refreshing it from the database.

        Args:
            db: Async database session
            id: Primary key (scalar or tuple for composite keys)

        Returns:
            Entity found or None if it doesn't exist
        """
        try:
            return await db.get(self.model, id, populate_existing=True)
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching {self.model.__name__} with ID {id}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error fetching {self.model.__name__}",
                original_error=e
            )

    def _apply_filters(self, query, filters: Dict[str, Any]):
        for field, value in filters.items():
            if hasattr(self.model, field) and value is not None:
                query = query.where(getattr(self.model, field) == value)
        return query

    async def get_multi(
            self, db: AsyncSession, *, skip: int = 0, limit: int = 100, order_by=None, **filters
    ) -> List[ModelType]:
        """
        Get multiple entities with pagination and optional equality filters.

        Args:
            db: Async database session
            skip: Number of records to skip (for pagination)
            limit: Maximum number of records to return
            order_by: Optional ordering clause
            **filters: Additional filters in the format field=value

        Returns:
            List of found entities

        Raises:
            DatabaseOperationException: If an error occurs in the query
        """
        try:
            query = self._apply_filters(select(self.model), filters)
            if order_by is not None:
                query = query.order_by(*order_by) if isinstance(order_by, (list, tuple)) else query.order_by(order_by)
            query = query.offset(skip).limit(limit).execution_options(populate_existing=True)
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing {self.model.__name__}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error listing {self.model.__name__}s",
                original_error=e
            )

    async def count(self, db: AsyncSession, **filters) -> int:
        """
        Count the number of entities matching the filters.

        Args:
            db: Async database session
            **filters: Filters in the format field=value

        Returns:
            Number of entities matching the filters

        Raises:
            DatabaseOperationException: If an error occurs in the query
        """
        try:
            query = self._apply_filters(select(func.count()).select_from(self.model), filters)
            result = await db.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting {self.model.__name__}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error counting {self.model.__name__}s",
                original_error=e
            )

    async def create(self, db: AsyncSession, *, obj_in: Dict[str, Any]) -> ModelType:
        """
        Create a new entity and commit it.

        Args:
            db: Async database session
            obj_in: Column values of the new entity

        Returns:
            Newly created entity

        Raises:
            InvalidArgumentError: If the entity violates a uniqueness constraint
            DatabaseOperationException: If another database error occurs
        """
        try:
            db_obj = self.model(**obj_in)
            db.add(db_obj)
            await db.commit()
            await db.refresh(db_obj)

            self.logger.info(f"{self.model.__name__} created")
            return db_obj

        except IntegrityError as e:
            await db.rollback()
            self.logger.warning(f"Integrity error creating {self.model.__name__}: {str(e)}")
            raise InvalidArgumentError(detail=f"{self.model.__name__} with these data already exists")

        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error creating {self.model.__name__}",
                original_error=e
            )

    async def _execute_write(self, db: AsyncSession, statement, *, commit: bool = True, action: str = "updating") -> int:
        """
        Execute a bulk UPDATE/DELETE and return the number of matched rows.

        Raises:
            DatabaseOperationException: If the statement fails
        """
        try:
            result = await db.execute(statement.execution_options(synchronize_session=False))
            if commit:
                await db.commit()
            return result.rowcount
        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error {action} {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error {action} {self.model.__name__}",
                original_error=e
            )

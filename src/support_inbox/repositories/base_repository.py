"""
Base repository class providing common database operations.

This class is the shared foundation of the message store repositories. It wraps
SQLAlchemy's async session with the CRUD operations every model needs, so the
model-specific repositories only carry their own queries.

Repositories `flush()` but never `commit()`: the caller owns the transaction
(see `support_inbox.database.session.session_scope`).

Filters
-------
Methods taking `**filters` (find_all, count, update_where, delete_where) build a
WHERE clause from keyword arguments:

    | value                    | condition                 |
    | ------------------------ | ------------------------- |
    | scalar                   | field = value             |
    | list / tuple / set       | field IN (values)         |
    | None                     | field IS NULL             |

Unknown field names raise InvalidFieldError instead of being silently ignored;
a typo in a delete selector must never widen what gets deleted.
"""
from support_inbox.exceptions.base import (
    RepositoryError,
    DuplicateError,
    NotFoundError,
    InvalidFieldError
)

from support_inbox.exceptions.mapper import db_error_handler
from support_inbox.validators.exception_validators import find_unknown_model_kwargs, get_required_columns

import time
from datetime import datetime, timezone
from typing import TypeVar, Generic, Type, Any
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from sqlalchemy.sql.elements import ColumnElement
import logging

from support_inbox.database.base import Base

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

# Setup logging
logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository providing common CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize the repository.

        Args:
            model: The SQLAlchemy model class (Message, not Message())
            db: The async database session, shared by every repository of a unit of work
        """
        self.model = model
        self.db = db

    # =================================================================================================================
    # Helpers
    # =================================================================================================================

    def _conditions(self, filters: dict[str, Any], operation: str) -> list[ColumnElement[bool]]:
        """
        Translate keyword filters into SQLAlchemy conditions (see module docstring).

        Raises:
            InvalidFieldError: If a filter names a field the model does not have.
        """
        unknown = find_unknown_model_kwargs(self.model, filters)
        if unknown:
            logger.info(
                "repo.filter.invalid_fields",
                extra={"model": self.model.__name__, "operation": operation, "invalid_fields": sorted(unknown)},
            )
            raise InvalidFieldError(
                f"Unknown filter field(s) for {self.model.__name__}: {', '.join(unknown)}", fields=unknown)

        conditions = []
        for field, value in filters.items():
            column = getattr(self.model, field)
            if value is None:
                conditions.append(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(column.in_(list(value)))
            else:
                conditions.append(column == value)
        return conditions

    def _touch(self, values: dict[str, Any]) -> dict[str, Any]:
        # Stamp updated_at on models that track it
        if hasattr(self.model, "updated_at") and "updated_at" not in values:
            values["updated_at"] = datetime.now(timezone.utc)
        return values

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def create(self, **kwargs) -> ModelType:
        """
        Create an entity with validation + DB write. Logging:
        - DEBUG: start event with model name and provided keys (not values).
        - INFO: expected domain errors (invalid fields, missing required).
        - INFO: success event with created id and duration_ms.
        """
        logger.debug(
            "repo.create.start",
            extra={
                "model": self.model.__name__,
                "operation": "create",
                # keys only, message bodies do not belong in logs
                "provided_keys": sorted(kwargs.keys()),
            },
        )

        # 1) unknown fields
        unknown = find_unknown_model_kwargs(self.model, kwargs)
        if unknown:
            logger.info(
                "repo.create.invalid_fields",
                extra={
                    "model": self.model.__name__,
                    "operation": "create",
                    "invalid_fields": sorted(unknown),
                },
            )
            raise InvalidFieldError(f"Unknown field(s) for {self.model.__name__}: {', '.join(unknown)}", fields=unknown)

        # 2) required fields (NOT NULL without default), missing or explicitly None
        required_cols = get_required_columns(self.model)
        missing = [c for c in required_cols if kwargs.get(c) is None]
        if missing:
            logger.info(
                "repo.create.missing_required",
                extra={
                    "model": self.model.__name__,
                    "operation": "create",
                    "missing_fields": sorted(missing),
                },
            )
            raise RepositoryError(f"Missing required field(s): {', '.join(missing)} for {self.model.__name__}", fields=missing)

        # 3) DB write; integrity errors are mapped to app-level errors
        start = time.perf_counter()

        async with db_error_handler(self.db, self.model.__name__):
            entity = self.model(**kwargs)
            self.db.add(entity)
            # flush sends the INSERT inside the caller's transaction; refresh loads
            # server-generated values (created_at, ...) so the returned object is complete
            await self.db.flush()
            await self.db.refresh(entity)

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "repo.create.success",
            extra={
                "model": self.model.__name__,
                "operation": "create",
                "id": str(getattr(entity, "id", None)),
                "duration_ms": duration_ms,
            },
        )
        return entity

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def get_by_id(self, entity_id: UUID) -> ModelType | None:
        """
        Get an entity by its ID.

        Returns:
            The entity if found, otherwise None
        """
        try:
            result = await self.db.execute(
                select(self.model).where(self.model.id == entity_id)
            )
            entity = result.scalar_one_or_none()
            logger.debug(f"Retrieved {self.model.__name__} by ID: {entity_id}")
            return entity

        except Exception as e:
            logger.error(f"Error retrieving {self.model.__name__} by ID {entity_id}: {e}")
            raise

    async def get_by_id_or_raise(self, entity_id: UUID) -> ModelType:
        """
        Get an entity by its ID or raise NotFoundError.
        """
        entity = await self.get_by_id(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.model.__name__} with ID {entity_id} not found")
        return entity

    async def find_all(self, order_by: str | None = None, descending: bool = False, **filters: Any) -> list[ModelType]:
        """
        Return every entity matching `filters`.

        Args:
            order_by: Field to sort by; defaults to `created_at` when the model has one.
            descending: Sort direction.
            **filters: Filter conditions (see module docstring).
        """
        conditions = self._conditions(filters, "find_all")
        query = select(self.model).where(*conditions)

        sort_field = order_by or ("created_at" if hasattr(self.model, "created_at") else None)
        if sort_field:
            if not hasattr(self.model, sort_field):
                raise InvalidFieldError(
                    f"{self.model.__name__} has no field '{sort_field}'", fields=[sort_field])
            column = getattr(self.model, sort_field)
            query = query.order_by(column.desc() if descending else column.asc())

        try:
            result = await self.db.execute(query)
            entities = list(result.scalars().all())
            logger.debug(f"Found {len(entities)} {self.model.__name__} entities")
            return entities

        except Exception as e:
            logger.error(f"Error finding {self.model.__name__} entities: {e}")
            raise

    # =================================================================================================================
    # Update Operations
    # =================================================================================================================

    async def update(self, entity_id: UUID, **kwargs) -> ModelType | None:
        """
        Update an entity by its ID.

        None values are dropped so partial updates never null a column by accident;
        empty strings and zeros are real values and are written.

        Returns:
            The updated entity if found, None otherwise
        """
        unknown = find_unknown_model_kwargs(self.model, kwargs)
        if unknown:
            raise InvalidFieldError(f"Unknown field(s) for {self.model.__name__}: {', '.join(unknown)}", fields=unknown)

        update_data = {k: v for k, v in kwargs.items() if v is not None}
        if not update_data:
            logger.warning(f"No valid data provided for updating {self.model.__name__}")
            return await self.get_by_id(entity_id)

        stmt = (
            update(self.model)
            .where(self.model.id == entity_id)
            .values(**self._touch(update_data))
            # keep objects already loaded in this session in step with the row
            .execution_options(synchronize_session="evaluate")
        )

        async with db_error_handler(self.db, self.model.__name__):
            result = await self.db.execute(stmt)

        if result.rowcount == 0:
            logger.warning(f"{self.model.__name__} with ID {entity_id} not found for update")
            return None

        logger.debug(f"Updated {self.model.__name__} with ID: {entity_id}")
        return await self.get_by_id(entity_id)

    async def update_where(self, filters: dict[str, Any], **values: Any) -> int:
        """
        Set `values` on every entity matching `filters`.

        Returns:
            Number of updated rows
        """
        conditions = self._conditions(filters, "update_where")
        unknown = find_unknown_model_kwargs(self.model, values)
        if unknown:
            raise InvalidFieldError(f"Unknown field(s) for {self.model.__name__}: {', '.join(unknown)}", fields=unknown)

        stmt = (
            update(self.model)
            .where(*conditions)
            .values(**self._touch(dict(values)))
            .execution_options(synchronize_session="evaluate")
        )

        async with db_error_handler(self.db, self.model.__name__):
            result = await self.db.execute(stmt)

        logger.debug(f"Updated {result.rowcount} {self.model.__name__} entities")
        return result.rowcount

    # =================================================================================================================
    # Delete Operations
    # =================================================================================================================

    async def delete(self, entity_id: UUID) -> bool:
        """
        Delete an entity by its ID.

        Returns:
            True if entity was deleted, False if not found
        """
        stmt = delete(self.model).where(self.model.id == entity_id)

        async with db_error_handler(self.db, self.model.__name__):
            result = await self.db.execute(stmt)

        if result.rowcount > 0:
            logger.debug(f"Deleted {self.model.__name__} with ID: {entity_id}")
            return True

        logger.warning(f"{self.model.__name__} with ID {entity_id} not found for deletion")
        return False

    async def delete_where(self, **filters: Any) -> int:
        """
        Delete every entity matching `filters`. An empty selector is refused.

        Returns:
            Number of deleted rows
        """
        if not filters:
            raise InvalidFieldError(f"Refusing to delete every {self.model.__name__} without a selector")

        conditions = self._conditions(filters, "delete_where")
        stmt = (
            delete(self.model)
            .where(*conditions)
            .execution_options(synchronize_session="evaluate")
        )

        async with db_error_handler(self.db, self.model.__name__):
            result = await self.db.execute(stmt)

        logger.info(
            "repo.delete_where.success",
            extra={"model": self.model.__name__, "operation": "delete_where", "deleted": result.rowcount},
        )
        return result.rowcount

    # =================================================================================================================
    # Existence / Count
    # =================================================================================================================

    async def exists(self, entity_id: UUID) -> bool:
        """
        Check if an entity exists by its ID (selects the id column only).
        """
        try:
            result = await self.db.execute(
                select(self.model.id).where(self.model.id == entity_id)
            )
            exists = result.scalar() is not None
            logger.debug(f"{self.model.__name__} with ID {entity_id} exists: {exists}")
            return exists

        except Exception as e:
            logger.error(f"Error checking existence of {self.model.__name__} {entity_id}: {e}")
            raise

    async def count(self, **filters: Any) -> int:
        """
        Count entities matching `filters` (all entities when none are given).
        """
        conditions = self._conditions(filters, "count")
        query = select(func.count(self.model.id)).where(*conditions)

        try:
            result = await self.db.execute(query)
            count = result.scalar() or 0
            logger.debug(f"Counted {count} {self.model.__name__} entities")
            return count

        except Exception as e:
            logger.error(f"Error counting {self.model.__name__}: {e}")
            raise


# BaseRepository Method Summary
# | Method Name                         | Returns                      | Notes                                              |
# | ----------------------------------- | ---------------------------- | -------------------------------------------------- |
# | `create(**kwargs)`                  | Created model instance       | Unknown/missing field checks, flush + refresh      |
# | `get_by_id(entity_id)`              | Model instance or `None`     |                                                    |
# | `get_by_id_or_raise(entity_id)`     | Model instance               | Raises `NotFoundError`                             |
# | `find_all(order_by, **filters)`     | List of model instances      | Defaults to `created_at` ascending                 |
# | `update(entity_id, **kwargs)`       | Updated model or `None`      | Drops `None` values, stamps `updated_at`           |
# | `update_where(filters, **values)`   | Number of updated rows       |                                                    |
# | `delete(entity_id)`                 | `True` / `False`             |                                                    |
# | `delete_where(**filters)`           | Number of deleted rows       | Empty selector refused                             |
# | `exists(entity_id)`                 | `True` / `False`             |                                                    |
# | `count(**filters)`                  | Integer count                |                                                    |

"""Base repository with common CRUD operations."""

from collections.abc import Sequence
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from agentrelay.exceptions import DatabaseError, EntityNotFoundError
from agentrelay.utils.logger import logger

ModelT = TypeVar("ModelT", bound=SQLModel)
type FilterValueT = str | int | float | bool


class BaseRepository[ModelT: SQLModel]:
    """Base repository providing common database operations."""

    def __init__(self, session: AsyncSession, model_class: type[ModelT]):
        """Initialize repository with session and model class.

        Args:
            session: Database session
            model_class: SQLModel class this repository operates on
        """
        self.session = session
        self.model_class = model_class

    def _not_found(self, id: Any) -> EntityNotFoundError:
        return EntityNotFoundError(f"{self.model_class.__name__} with ID {id} not found")

    async def get(self, id: Any) -> ModelT:
        """Get entity by ID or raise EntityNotFoundError.

        Args:
            id: Entity ID

        Returns:
            Found entity

        Raises:
            EntityNotFoundError: If entity doesn't exist
        """
        entity = await self.session.get(self.model_class, id)
        if not entity:
            raise self._not_found(id)
        return entity

    async def get_optional(self, id: Any) -> ModelT | None:
        """Get entity by ID or return None.

        Args:
            id: Entity ID

        Returns:
            Found entity or None
        """
        return await self.session.get(self.model_class, id)

    async def list_all(self, **filters: FilterValueT) -> Sequence[ModelT]:
        """List all entities matching filters.

        Args:
            **filters: Field-value pairs to filter by

        Returns:
            List of all matching entities
        """
        statement = select(self.model_class)

        for field, value in filters.items():
            if hasattr(self.model_class, field):
                statement = statement.where(getattr(self.model_class, field) == value)

        result = await self.session.execute(statement)
        return result.scalars().all()

    async def create(self, entity: ModelT) -> ModelT:
        """Create new entity.

        Args:
            entity: Entity to create

        Returns:
            Created entity with refreshed data
        """
        self.session.add(entity)
        await self._commit(entity, "create")
        return entity

    async def update(
        self, entity: ModelT, update_data: dict[str, Any], exclude_unset: bool = True
    ) -> ModelT:
        """Update entity with given data.

        Args:
            entity: Entity to update
            update_data: Dictionary with fields to update
            exclude_unset: Whether to skip ``None`` values

        Returns:
            Updated entity
        """
        for field, value in update_data.items():
            if exclude_unset and value is None:
                continue
            if hasattr(entity, field):
                setattr(entity, field, value)

        await self._commit(entity, "update")
        return entity

    async def refresh(self, entity: ModelT, attribute_names: list[str] | None = None) -> ModelT:
        """Refresh entity from database.

        Args:
            entity: Entity to refresh
            attribute_names: Optional list of attributes to refresh

        Returns:
            Refreshed entity
        """
        await self.session.refresh(entity, attribute_names)
        return entity

    async def _commit(self, entity: ModelT, action: str) -> None:
        """Commit the session and refresh ``entity``.

        Raises:
            DatabaseError: If the database rejects the write. The session is
                rolled back first.
        """
        try:
            await self.session.commit()
            await self.session.refresh(entity)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to {action} {self.model_class.__name__}: {e}")
            raise DatabaseError().with_context(
                f"Failed to {action} {self.model_class.__name__}: {e}"
            ) from e

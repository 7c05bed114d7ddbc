"""Repository for pipeline definitions."""

from collections.abc import Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from agentrelay.exceptions import PipelineNotFoundError
from agentrelay.models.pipeline_definition import PipelineDefinition
from agentrelay.repositories.base import BaseRepository


class PipelineDefinitionRepository(BaseRepository[PipelineDefinition]):
    """Repository for reading and storing pipeline definitions."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, PipelineDefinition)

    async def get(self, id: Any) -> PipelineDefinition:
        """Get a pipeline definition by ID.

        Raises:
            PipelineNotFoundError: If the definition doesn't exist.
        """
        definition = await self.get_optional(id)
        if definition is None:
            raise PipelineNotFoundError(str(id))
        return definition

    async def upsert(
        self,
        id: str,
        name: str,
        steps: list[dict[str, Any]],
        schedule: str | None = None,
        is_paused: bool = False,
    ) -> PipelineDefinition:
        """Create or update a pipeline definition.

        Args:
            id: Pipeline identifier.
            name: Pipeline name.
            steps: Ordered list of step dicts with ``agentType`` and ``config``.
            schedule: Optional cron expression.
            is_paused: Whether automatic runs are suspended.

        Returns:
            The created or updated PipelineDefinition.
        """
        data = {"name": name, "steps": steps, "schedule": schedule, "is_paused": is_paused}
        existing = await self.get_optional(id)
        if existing:
            return await self.update(existing, data, exclude_unset=False)
        return await self.create(PipelineDefinition(id=id, **data))

    async def list_schedulable(self) -> Sequence[PipelineDefinition]:
        """List definitions that carry a schedule and are not paused."""
        definitions = await self.list_all(is_paused=False)
        return [d for d in definitions if d.schedule]

    async def set_paused(self, id: str, is_paused: bool) -> PipelineDefinition:
        """Pause or resume automatic runs of a definition.

        Raises:
            PipelineNotFoundError: If the definition doesn't exist.
        """
        definition = await self.get(id)
        return await self.update(definition, {"is_paused": is_paused}, exclude_unset=False)

"""Repository layer for data access operations."""

from agentrelay.repositories.base import BaseRepository
from agentrelay.repositories.pipeline_definition_repository import PipelineDefinitionRepository
from agentrelay.repositories.pipeline_run_repository import PipelineRunRepository

__all__ = ["BaseRepository", "PipelineDefinitionRepository", "PipelineRunRepository"]

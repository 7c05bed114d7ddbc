"""Pipeline definition model: a named ordered list of agent steps."""

from typing import Any

from sqlmodel import JSON, Column, Field, SQLModel

from .base import new_id


class PipelineDefinitionBase(SQLModel):
    """Shared fields for pipeline definitions.

    Args:
        name: Human-readable pipeline name.
        steps: Ordered list of step dicts, each with ``agentType`` and ``config``.
        schedule: Optional 5-field cron expression for automatic runs.
        is_paused: Paused pipelines are never scheduled automatically.
    """

    name: str = Field(min_length=1, max_length=100)
    steps: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    schedule: str | None = Field(default=None, max_length=100)
    is_paused: bool = False


class PipelineDefinition(PipelineDefinitionBase, table=True):
    """Stored pipeline definition."""

    __tablename__ = "pipeline_definition"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=100)


class PipelineDefinitionRead(PipelineDefinitionBase):
    """API response schema for pipeline definitions."""

    id: str

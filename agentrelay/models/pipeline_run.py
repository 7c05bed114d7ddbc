"""Pipeline run model: durable, externally polled state of one execution."""

from datetime import datetime
from typing import Any

from sqlalchemy import Text
from sqlmodel import JSON, Column, Field, SQLModel

from .base import PipelineRunStatus, new_id, utcnow


class PipelineRunBase(SQLModel):
    """Fields the engine reads and writes while a run executes."""

    pipeline_id: str = Field(index=True, max_length=100)
    status: PipelineRunStatus = Field(default=PipelineRunStatus.queued, index=True)
    current_step: int = 0
    total_steps: int = 0
    current_agent: str | None = Field(default=None, max_length=100)
    result: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    error: str | None = Field(default=None, sa_column=Column(Text))
    failed_step: int | None = None
    job_id: str | None = Field(default=None, max_length=255)
    started_at: datetime | None = None
    completed_at: datetime | None = None


class PipelineRun(PipelineRunBase, table=True):
    """One execution attempt of a pipeline."""

    __tablename__ = "pipeline_run"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=100)
    created_at: datetime = Field(default_factory=utcnow)

    def __repr__(self) -> str:
        return (
            f"<PipelineRun {self.id} pipeline={self.pipeline_id} status={self.status.value} "
            f"step={self.current_step}/{self.total_steps}>"
        )

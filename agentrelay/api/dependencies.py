"""
Common dependencies for agentrelay API endpoints.

Repositories, the job queue and the agent registry are provided through
FastAPI dependencies so tests can override each of them.
"""

from typing import Annotated

from celery import Celery
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..repositories import PipelineDefinitionRepository, PipelineRunRepository
from ..services.pipeline.agents import AgentRegistry, agent_registry
from ..services.pipeline.broker import get_celery_app
from ..services.pipeline.queue import JobQueue
from ..utils.database import get_async_session

SessionDep = Annotated[AsyncSession, Depends(get_async_session)]


async def get_pipeline_definition_repository(session: SessionDep) -> PipelineDefinitionRepository:
    return PipelineDefinitionRepository(session)


async def get_pipeline_run_repository(session: SessionDep) -> PipelineRunRepository:
    return PipelineRunRepository(session)


def get_job_queue(app: Annotated[Celery, Depends(get_celery_app)]) -> JobQueue:
    """Job queue publishing through the process-wide Celery app."""
    return JobQueue(app)


def get_agent_registry() -> AgentRegistry:
    return agent_registry


PipelineDefinitionRepositoryDep = Annotated[
    PipelineDefinitionRepository, Depends(get_pipeline_definition_repository)
]
PipelineRunRepositoryDep = Annotated[PipelineRunRepository, Depends(get_pipeline_run_repository)]
JobQueueDep = Annotated[JobQueue, Depends(get_job_queue)]
AgentRegistryDep = Annotated[AgentRegistry, Depends(get_agent_registry)]

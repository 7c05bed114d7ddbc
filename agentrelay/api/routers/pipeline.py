"""Pipeline API router: read definitions and trigger runs."""

from fastapi import APIRouter, status

from agentrelay.api.dependencies import (
    AgentRegistryDep,
    JobQueueDep,
    PipelineDefinitionRepositoryDep,
    PipelineRunRepositoryDep,
)
from agentrelay.models.pipeline_definition import PipelineDefinition, PipelineDefinitionRead
from agentrelay.services.pipeline.trigger import trigger_pipeline_run

router = APIRouter()


@router.get("/{pipeline_id}", response_model=PipelineDefinitionRead)
async def get_pipeline_definition(
    pipeline_id: str,
    repo: PipelineDefinitionRepositoryDep,
) -> PipelineDefinition:
    """Get a pipeline definition.

    Raises:
        PipelineNotFoundError: If the pipeline doesn't exist (→ 404).
    """
    return await repo.get(pipeline_id)


@router.post("/{pipeline_id}/run", status_code=status.HTTP_202_ACCEPTED)
async def run_pipeline(
    pipeline_id: str,
    definitions: PipelineDefinitionRepositoryDep,
    runs: PipelineRunRepositoryDep,
    queue: JobQueueDep,
    registry: AgentRegistryDep,
) -> dict[str, str]:
    """Queue a run of a pipeline and return without waiting for it.

    Returns:
        ``{"jobId", "pipelineRunId", "status": "queued"}``

    Raises:
        PipelineNotFoundError: If the pipeline doesn't exist (→ 404).
        PipelineConfigError: If it has no steps or invalid step configs (→ 422).
        JobEnqueueError: If the job queue is unavailable (→ 503).
    """
    return await trigger_pipeline_run(
        pipeline_id, definitions=definitions, runs=runs, queue=queue, registry=registry
    )

"""
Run trigger: turns a stored pipeline definition into a queued run.
"""

from pydantic import ValidationError as PydanticValidationError

from agentrelay.exceptions import JobEnqueueError, PipelineConfigError
from agentrelay.repositories.pipeline_definition_repository import PipelineDefinitionRepository
from agentrelay.repositories.pipeline_run_repository import PipelineRunRepository
from agentrelay.utils.logger import logger

from .agents import AgentRegistry
from .message import JobPayload, StepSpec
from .queue import JobQueue


def parse_steps(pipeline_id: str, raw_steps: list[dict]) -> list[StepSpec]:
    """Parse stored step dicts, rejecting empty or malformed step lists.

    Raises:
        PipelineConfigError: If there are no steps or a step is malformed.
    """
    if not raw_steps:
        raise PipelineConfigError(f"Pipeline '{pipeline_id}' has no steps")
    try:
        return [StepSpec.model_validate(step) for step in raw_steps]
    except PydanticValidationError as e:
        raise PipelineConfigError(
            f"Pipeline '{pipeline_id}' has malformed steps",
            errors=[err["msg"] for err in e.errors()],
        ) from e


async def trigger_pipeline_run(
    pipeline_id: str,
    definitions: PipelineDefinitionRepository,
    runs: PipelineRunRepository,
    queue: JobQueue,
    registry: AgentRegistry,
) -> dict[str, str]:
    """Create a queued run for a pipeline and enqueue its job.

    Args:
        pipeline_id: Definition to run.
        definitions: Definition repository.
        runs: Run repository.
        queue: Job queue the run is submitted to.
        registry: Registry used to validate step configs.

    Returns:
        ``{"jobId", "pipelineRunId", "status": "queued"}``

    Raises:
        PipelineNotFoundError: If the definition doesn't exist.
        PipelineConfigError: If the definition has no steps or invalid step configs.
        JobEnqueueError: If the queue rejects the job (the run is marked failed).
    """
    definition = await definitions.get(pipeline_id)
    steps = parse_steps(pipeline_id, definition.steps)
    registry.validate_steps(steps)

    run = await runs.create_queued(pipeline_id, total_steps=len(steps))
    payload = JobPayload(pipeline_id=pipeline_id, pipeline_run_id=run.id, steps=steps)

    try:
        job = queue.enqueue(payload)
    except JobEnqueueError as e:
        await runs.mark_failed(run.id, str(e))
        raise

    await runs.attach_job(run.id, job.id)
    logger.info(f"Pipeline '{pipeline_id}' run '{run.id}' queued as job {job.id}")
    return {"jobId": job.id, "pipelineRunId": run.id, "status": "queued"}

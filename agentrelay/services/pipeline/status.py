"""Status read model: what pollers see for a pipeline run."""

from agentrelay.models.base import PipelineRunStatus
from agentrelay.models.pipeline_run import PipelineRun
from agentrelay.repositories.pipeline_run_repository import PipelineRunRepository
from agentrelay.types import StatusResponse


def project_run_status(run: PipelineRun) -> StatusResponse:
    """Project a run row into its status response shape.

    - queued/running: ``{status, currentStep, totalSteps, currentAgent}``
    - completed: ``{status, result}``
    - failed: ``{status, error}`` plus ``failedStep`` when a step failed
    """
    match run.status:
        case PipelineRunStatus.completed:
            return {"status": run.status.value, "result": run.result}
        case PipelineRunStatus.failed:
            response: StatusResponse = {"status": run.status.value, "error": run.error}
            if run.failed_step is not None:
                response["failedStep"] = run.failed_step
            return response
        case _:
            return {
                "status": run.status.value,
                "currentStep": run.current_step,
                "totalSteps": run.total_steps,
                "currentAgent": run.current_agent,
            }


async def get_run_status(runs: PipelineRunRepository, run_id: str) -> StatusResponse:
    """Read a run from storage and project its status.

    Raises:
        PipelineRunNotFoundError: If no run has this ID.
    """
    run = await runs.get(run_id)
    # Always read the committed row, never a stale identity-map copy
    await runs.refresh(run)
    return project_run_status(run)

"""Job status API router: what clients poll while a run executes."""

from fastapi import APIRouter

from agentrelay.api.dependencies import PipelineRunRepositoryDep
from agentrelay.services.pipeline.status import get_run_status
from agentrelay.types import StatusResponse

router = APIRouter()


@router.get("/{run_id}")
async def get_job_status(run_id: str, runs: PipelineRunRepositoryDep) -> StatusResponse:
    """Get the current status of a pipeline run.

    Raises:
        PipelineRunNotFoundError: If the run doesn't exist (→ 404).
    """
    return await get_run_status(runs, run_id)

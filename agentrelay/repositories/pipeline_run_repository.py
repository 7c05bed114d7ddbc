"""Repository for pipeline run state transitions."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from agentrelay.exceptions import PipelineRunNotFoundError
from agentrelay.models.base import PipelineRunStatus, utcnow
from agentrelay.models.pipeline_run import PipelineRun
from agentrelay.repositories.base import BaseRepository


class PipelineRunRepository(BaseRepository[PipelineRun]):
    """Repository for pipeline runs.

    Every transition commits immediately so pollers observe it
    as soon as the worker makes it.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, PipelineRun)

    async def get(self, id: Any) -> PipelineRun:
        """Get a pipeline run by ID.

        Raises:
            PipelineRunNotFoundError: If the run doesn't exist.
        """
        run = await self.get_optional(id)
        if run is None:
            raise PipelineRunNotFoundError(str(id))
        return run

    async def create_queued(self, pipeline_id: str, total_steps: int) -> PipelineRun:
        """Insert a new run in ``queued`` state.

        Args:
            pipeline_id: Definition the run executes.
            total_steps: Number of steps in the definition.

        Returns:
            The created run.
        """
        run = PipelineRun(
            pipeline_id=pipeline_id,
            status=PipelineRunStatus.queued,
            current_step=0,
            total_steps=total_steps,
        )
        return await self.create(run)

    async def attach_job(self, run_id: str, job_id: str) -> PipelineRun:
        """Remember which queue job carries this run."""
        run = await self.get(run_id)
        return await self.update(run, {"job_id": job_id})

    async def mark_running(self, run_id: str) -> PipelineRun:
        """Enter ``running`` for a new attempt, clearing leftovers of earlier attempts."""
        run = await self.get(run_id)
        return await self.update(
            run,
            {
                "status": PipelineRunStatus.running,
                "current_step": 0,
                "current_agent": None,
                "result": None,
                "error": None,
                "failed_step": None,
                "started_at": utcnow(),
                "completed_at": None,
            },
            exclude_unset=False,
        )

    async def record_progress(
        self, run_id: str, current_step: int, total_steps: int, current_agent: str
    ) -> PipelineRun:
        """Store the step that is about to execute."""
        run = await self.get(run_id)
        return await self.update(
            run,
            {
                "current_step": current_step,
                "total_steps": total_steps,
                "current_agent": current_agent,
            },
        )

    async def mark_completed(self, run_id: str, result: dict[str, Any]) -> PipelineRun:
        """Finish the attempt successfully with its result."""
        run = await self.get(run_id)
        return await self.update(
            run,
            {
                "status": PipelineRunStatus.completed,
                "result": result,
                "error": None,
                "failed_step": None,
                "completed_at": utcnow(),
            },
            exclude_unset=False,
        )

    async def mark_failed(
        self, run_id: str, error: str, failed_step: int | None = None
    ) -> PipelineRun:
        """Finish the attempt with an error message."""
        run = await self.get(run_id)
        return await self.update(
            run,
            {
                "status": PipelineRunStatus.failed,
                "result": None,
                "error": error,
                "failed_step": failed_step,
                "completed_at": utcnow(),
            },
            exclude_unset=False,
        )

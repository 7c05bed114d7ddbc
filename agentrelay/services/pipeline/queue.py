"""
Job queue: fire-and-forget submission of pipeline runs.

``JobQueue.enqueue`` publishes a job and returns its ID immediately. Every job
carries the same retry options (3 attempts, exponential backoff from 1 s),
whatever the payload contains.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kombu.exceptions import KombuError

from agentrelay.exceptions import JobEnqueueError
from agentrelay.settings import settings
from agentrelay.utils.logger import logger

from .broker import PROCESS_JOB_TASK
from .message import BackoffPolicy, JobOptions, JobPayload

if TYPE_CHECKING:
    from celery import Celery


def default_job_options() -> JobOptions:
    """Retry options attached to every pipeline job."""
    return JobOptions(
        attempts=settings.pipeline_max_attempts,
        backoff=BackoffPolicy(type="exponential", delay=settings.pipeline_backoff_delay_ms),
    )


@dataclass(slots=True, frozen=True)
class EnqueuedJob:
    """Handle returned by :meth:`JobQueue.enqueue`."""

    id: str


class JobQueue:
    """Durable at-least-once queue of pipeline jobs.

    Args:
        app: Celery app the jobs are published through.
        queue_name: Target queue (default: ``settings.pipeline_queue``).
        options: Retry options (default: :func:`default_job_options`).
    """

    def __init__(
        self,
        app: Celery,
        queue_name: str | None = None,
        options: JobOptions | None = None,
    ) -> None:
        self.app = app
        self.queue_name = queue_name or settings.pipeline_queue
        self.options = options or default_job_options()

    def enqueue(self, payload: JobPayload) -> EnqueuedJob:
        """Publish a pipeline job without waiting for it to run.

        Args:
            payload: Pipeline run request.

        Returns:
            Handle with the queue job ID.

        Raises:
            JobEnqueueError: If the broker cannot accept the job.
        """
        try:
            async_result = self.app.send_task(
                PROCESS_JOB_TASK,
                kwargs={"payload": payload.to_wire(), "options": self.options.to_wire()},
                queue=self.queue_name,
            )
        except (KombuError, OSError) as e:
            logger.error(
                f"Failed to enqueue pipeline '{payload.pipeline_id}' "
                f"run '{payload.pipeline_run_id}': {e}"
            )
            raise JobEnqueueError(f"Job queue unavailable: {e}") from e

        logger.info(
            f"Enqueued pipeline '{payload.pipeline_id}' run '{payload.pipeline_run_id}' "
            f"as job {async_result.id} ({len(payload.steps)} steps)"
        )
        return EnqueuedJob(id=str(async_result.id))

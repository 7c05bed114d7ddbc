"""
Celery tasks for pipeline execution.

``process_pipeline_job`` runs one attempt of a job through
:class:`PipelineWorker`. Each attempt gets a fresh event loop and its own
database engine because async engines cannot be shared across loops.
Retries are scheduled here, with the job's exponential backoff, while
attempts remain; the final failure reaches ``PipelineJobTask.on_failure``
which hands the job to the dead letter queue.
"""

from __future__ import annotations

import asyncio
from typing import Any

from celery import Task, shared_task

from agentrelay.repositories.pipeline_definition_repository import PipelineDefinitionRepository
from agentrelay.repositories.pipeline_run_repository import PipelineRunRepository
from agentrelay.settings import settings
from agentrelay.types import RunResult
from agentrelay.utils.db_manager import DatabaseManager
from agentrelay.utils.logger import logger

from . import signals  # noqa: F401
from .agents import agent_registry
from .broker import PROCESS_JOB_TASK, TRIGGER_SCHEDULED_TASK
from .dead_letter import AmqpDeadLetterQueue
from .message import Job, JobOptions, JobPayload
from .orchestrator import PipelineOrchestrator
from .queue import JobQueue
from .run_store import SqlRunStateStore
from .worker import PipelineWorker


def build_worker(db: DatabaseManager, app: Any) -> PipelineWorker:
    """Wire a PipelineWorker to a database and a Celery app."""
    store = SqlRunStateStore(db.get_async_session_context)
    return PipelineWorker(
        run_store=store,
        registry=agent_registry,
        orchestrator=PipelineOrchestrator(store, step_timeout=settings.pipeline_step_timeout),
        dead_letters=AmqpDeadLetterQueue(app),
    )


def build_job(task_id: str, retries: int, kwargs: dict[str, Any]) -> Job:
    """Rebuild the job envelope from a Celery request.

    Args:
        task_id: Celery task ID, which is the queue job ID.
        retries: Retries already made (``request.retries``).
        kwargs: Task kwargs with ``payload`` and optional ``options``.
    """
    options = JobOptions.model_validate(kwargs.get("options") or {})
    return Job(
        id=task_id,
        payload=JobPayload.model_validate(kwargs["payload"]),
        attempts_made=retries + 1,
        max_attempts=options.attempts,
        backoff=options.backoff,
    )


class PipelineJobTask(Task):
    """Base task that dead-letters jobs once they fail for good."""

    acks_late = True

    def on_failure(self, exc, task_id, args, kwargs, einfo) -> None:  # noqa: ARG002
        try:
            job = build_job(task_id, self.request.retries or 0, kwargs)
        except Exception as e:
            logger.error(f"Cannot rebuild failed job {task_id} for the dead letter queue: {e}")
            return
        build_worker(DatabaseManager(), self.app).handle_failure(job, exc)


async def _process_job(job: Job, app: Any) -> RunResult:
    db = DatabaseManager()
    try:
        return await build_worker(db, app).process(job)
    finally:
        await db.close()


@shared_task(bind=True, base=PipelineJobTask, name=PROCESS_JOB_TASK)
def process_pipeline_job(
    self: PipelineJobTask, payload: dict[str, Any], options: dict[str, Any] | None = None
) -> RunResult:
    """Run one attempt of a pipeline job, scheduling a retry if it fails."""
    job = build_job(self.request.id, self.request.retries or 0, {"payload": payload, "options": options})

    try:
        return asyncio.run(_process_job(job, self.app))
    except Exception as e:
        if not job.has_attempts_left:
            raise
        countdown = job.backoff.countdown(job.attempts_made)
        logger.warning(
            f"Job {job.id} attempt {job.attempts_made}/{job.max_attempts} failed, "
            f"retrying in {countdown:g}s: {e}"
        )
        raise self.retry(exc=e, countdown=countdown, max_retries=job.max_attempts - 1) from e


async def _trigger_scheduled(pipeline_id: str, app: Any) -> dict[str, str]:
    from .trigger import trigger_pipeline_run

    db = DatabaseManager()
    try:
        async with db.get_async_session_context() as session:
            definitions = PipelineDefinitionRepository(session)
            definition = await definitions.get(pipeline_id)
            if definition.is_paused:
                logger.info(f"Pipeline '{pipeline_id}' is paused, skipping scheduled run")
                return {"pipelineId": pipeline_id, "status": "skipped"}
            return await trigger_pipeline_run(
                pipeline_id,
                definitions=definitions,
                runs=PipelineRunRepository(session),
                queue=JobQueue(app),
                registry=agent_registry,
            )
    finally:
        await db.close()


@shared_task(bind=True, name=TRIGGER_SCHEDULED_TASK)
def trigger_scheduled_pipeline(self: Task, pipeline_id: str) -> dict[str, str]:
    """Create and enqueue a run of a scheduled pipeline."""
    return asyncio.run(_trigger_scheduled(pipeline_id, self.app))

"""
Pipeline worker: executes one claimed job and records its outcome.

``PipelineWorker.process`` drives a single attempt (mark running, resolve
agents, run the orchestrator, persist the terminal state). It never decides
about retries: a failed attempt raises so the queue can schedule the next one,
and ``handle_failure`` routes jobs that ran out of attempts to the dead letter
queue.

``run_worker`` starts the Celery worker process that consumes the pipeline queue.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from agentrelay.exceptions import PipelineStepError
from agentrelay.settings import settings
from agentrelay.types import RunResult
from agentrelay.utils.logger import logger

from .agents import AgentRegistry
from .dead_letter import DeadLetterQueue
from .message import DeadLetterEntry, Job
from .orchestrator import PipelineOrchestrator
from .run_store import RunStateStore

if TYPE_CHECKING:
    from celery import Celery


class PipelineWorker:
    """Runs pipeline jobs against the run state store.

    Args:
        run_store: Persists run state transitions.
        registry: Resolves step agent types into agents.
        orchestrator: Executes the resolved agents in order.
        dead_letters: Receives jobs that exhausted every attempt.
    """

    def __init__(
        self,
        run_store: RunStateStore,
        registry: AgentRegistry,
        orchestrator: PipelineOrchestrator,
        dead_letters: DeadLetterQueue,
    ):
        self.run_store = run_store
        self.registry = registry
        self.orchestrator = orchestrator
        self.dead_letters = dead_letters

    async def process(self, job: Job) -> RunResult:
        """Execute one attempt of a pipeline job.

        Args:
            job: Claimed job.

        Returns:
            The persisted result, ``{"steps": [...]}``.

        Raises:
            PipelineStepError: If a step failed.
            Exception: Anything raised while marking, resolving, running or
                storing the result, after the run has been marked failed.
        """
        payload = job.payload
        run_id = payload.pipeline_run_id
        prefix = f"[pipeline={payload.pipeline_id} run={run_id} job={job.id}]"

        logger.info(f"{prefix} Attempt {job.attempts_made}/{job.max_attempts} started")

        try:
            await self.run_store.mark_running(run_id)
            agents = self.registry.resolve_steps(payload.steps)
            result = await self.orchestrator.run(
                run_id,
                agents,
                initial_input={},
                configs=[step.config for step in payload.steps],
            )
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(f"{prefix} Attempt failed before completion: {error}")
            await self.run_store.mark_failed(run_id, error)
            raise

        if not result.succeeded:
            error = result.error or "Unknown error"
            await self.run_store.mark_failed(run_id, error, result.failed_step)
            logger.error(f"{prefix} Step {result.failed_step} failed: {error}")
            raise PipelineStepError(result.failed_step or "?", error)

        run_result: RunResult = {"steps": result.steps}
        try:
            await self.run_store.mark_completed(run_id, run_result)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(f"{prefix} Could not store result: {error}")
            await self.run_store.mark_failed(run_id, error)
            raise
        logger.info(f"{prefix} Completed {len(result.steps)} steps")
        return run_result

    def handle_failure(self, job: Job, error: BaseException | str) -> DeadLetterEntry | None:
        """React to a job failure reported by the queue.

        A job is dead-lettered exactly when it has used every attempt.

        Args:
            job: The failed job.
            error: Exception or message of the last attempt.

        Returns:
            The published entry, or None if the queue will retry the job.
        """
        if job.attempts_made < job.max_attempts:
            logger.debug(
                f"Job {job.id} failed attempt {job.attempts_made}/{job.max_attempts}, retry pending"
            )
            return None

        # PipelineStepError carries the bare agent message stored on the run
        message = getattr(error, "message", str(error))
        entry = DeadLetterEntry(original_job_id=job.id, data=job.payload, error=message)
        self.dead_letters.publish(entry)
        return entry


def get_worker_queues() -> list[str]:
    """Queues a pipeline worker consumes from.

    Returns:
        List with the configured pipeline queue.
    """
    return [settings.pipeline_queue]


def _heartbeat_loop(app: Celery, path: str, interval: float, stop: threading.Event) -> None:
    from .health import check_health, write_heartbeat

    while not stop.is_set():
        status = check_health(app.connection_for_read())
        if status.broker:
            write_heartbeat(path)
        else:
            logger.warning("Broker unreachable, heartbeat not refreshed")
        stop.wait(interval)


def run_worker(
    queues: list[str] | None = None,
    concurrency: int | None = None,
    app: Celery | None = None,
    beat: bool = False,
) -> None:
    """Start a Celery worker process for the pipeline queues.

    Loads agent modules so their agents register themselves, starts the
    heartbeat thread, then blocks in the Celery worker until shutdown.

    Args:
        queues: Queue names to listen on (default: :func:`get_worker_queues`).
        concurrency: Number of worker processes (default: ``settings.worker_concurrency``).
        app: Celery app (default: :func:`get_celery_app`).
        beat: Also run Celery beat in this process, firing the scheduled
            pipelines already loaded into ``app.conf.beat_schedule``.
    """
    from .agents import load_agent_modules
    from .broker import get_celery_app

    load_agent_modules(settings.agent_modules)

    app = app or get_celery_app()
    queues = queues or get_worker_queues()
    concurrency = concurrency or settings.worker_concurrency

    logger.info(f"Starting pipeline worker on queues: {queues} (concurrency={concurrency})")

    stop = threading.Event()
    heartbeat = threading.Thread(
        target=_heartbeat_loop,
        args=(app, settings.worker_heartbeat_file, settings.worker_heartbeat_interval, stop),
        name="agentrelay-heartbeat",
        daemon=True,
    )
    heartbeat.start()

    try:
        app.worker_main(
            argv=[
                "worker",
                f"--loglevel={settings.log_level}",
                f"--concurrency={concurrency}",
                f"--queues={','.join(queues)}",
                *(["--beat"] if beat else []),
            ]
        )
    finally:
        stop.set()
        logger.info("Pipeline worker stopped")

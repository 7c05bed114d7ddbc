"""
Celery application configuration for the pipeline service.

Provides a Celery app factory bound to RabbitMQ, plus a lazily created
process-wide app. Uses the RabbitMQ settings from agentrelay.settings.
"""

from __future__ import annotations

from celery import Celery

from agentrelay.settings import settings
from agentrelay.utils.logger import logger

# Module-level app reference, initialized lazily
_app: Celery | None = None

# Task names
PROCESS_JOB_TASK = "agentrelay.pipeline.process_job"
TRIGGER_SCHEDULED_TASK = "agentrelay.pipeline.trigger_scheduled"

TASK_MODULES = ["agentrelay.services.pipeline.tasks"]


def create_celery_app(
    broker_url: str | None = None,
    result_backend: str | None = None,
    queue_name: str | None = None,
) -> Celery:
    """Create a Celery app for the pipeline queue.

    Jobs are acknowledged only after they finish and each worker process
    prefetches a single job, so at most one worker holds a job at a time
    and a crashed worker's job is redelivered.

    Args:
        broker_url: Broker URL override (default: RabbitMQ from settings).
        result_backend: Optional result backend URL.
        queue_name: Queue that pipeline tasks are routed to.

    Returns:
        Configured Celery instance.
    """
    broker_url = broker_url or settings.broker_url
    result_backend = result_backend or settings.pipeline_result_backend_url
    queue_name = queue_name or settings.pipeline_queue

    app = Celery("agentrelay", broker=broker_url, backend=result_backend, include=TASK_MODULES)
    app.conf.update(
        # JSON only
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        # Claim semantics
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
        # Routing
        task_default_queue=queue_name,
        task_routes={"agentrelay.pipeline.*": {"queue": queue_name}},
        # Results are persisted on the run row, not in Celery
        task_ignore_result=result_backend is None,
        # Logging goes through loguru
        worker_hijack_root_logger=False,
        broker_connection_retry_on_startup=True,
        beat_schedule={},
    )

    logger.debug(f"Created pipeline Celery app for queue '{queue_name}'")
    return app


def get_celery_app() -> Celery:
    """Get or create the process-wide Celery app.

    Returns:
        The default Celery instance.
    """
    global _app
    if _app is None:
        _app = create_celery_app()
        _app.set_default()
    return _app


def get_test_app() -> Celery:
    """Create a Celery app backed by kombu's in-memory transport for testing.

    Returns:
        Celery instance that needs no running broker.
    """
    return create_celery_app(broker_url="memory://", queue_name="agentrelay.test")

"""
Pipeline Service: asynchronous agent pipeline execution for agentrelay.

Runs a stored, ordered list of agents as one queued job. The API enqueues a
job and returns immediately; a Celery worker claims it, runs every step in
order through the orchestrator and records progress on the run row, which
clients poll. Failed jobs are retried with exponential backoff and land in
the dead letter queue once every attempt is used.

Example:
    from agentrelay.services.pipeline import (
        Agent,
        JobQueue,
        JobPayload,
        StepSpec,
        get_celery_app,
        register_agent,
    )

    @register_agent
    class Summarizer(Agent):
        type = "summarizer"

        async def execute(self, input, config=None):
            return {"summary": ...}

    queue = JobQueue(get_celery_app())
    queue.enqueue(
        JobPayload(
            pipeline_id="daily-digest",
            pipeline_run_id=run.id,
            steps=[StepSpec(agent_type="summarizer")],
        )
    )
"""

from .agents import (
    Agent,
    AgentRegistry,
    PassthroughAgent,
    SupportsExecute,
    ValidationResult,
    agent_registry,
    load_agent_modules,
    register_agent,
)
from .broker import (
    PROCESS_JOB_TASK,
    TRIGGER_SCHEDULED_TASK,
    create_celery_app,
    get_celery_app,
    get_test_app,
)
from .dead_letter import AmqpDeadLetterQueue, DeadLetterQueue, InMemoryDeadLetterQueue
from .exceptions import (
    JobEnqueueError,
    PipelineConfigError,
    PipelineError,
    PipelineStepError,
    UnknownAgentError,
)
from .health import HealthStatus, check_health, write_heartbeat
from .message import (
    BackoffPolicy,
    DeadLetterEntry,
    Job,
    JobOptions,
    JobPayload,
    ProgressUpdate,
    StepSpec,
)
from .orchestrator import PipelineOrchestrator, PipelineResult, ProgressStore
from .queue import EnqueuedJob, JobQueue, default_job_options
from .run_store import RunStateStore, SqlRunStateStore
from .scheduler import PipelineScheduler, parse_cron, schedule_key
from .status import get_run_status, project_run_status
from .trigger import trigger_pipeline_run
from .worker import PipelineWorker, get_worker_queues, run_worker

__all__ = [
    "PROCESS_JOB_TASK",
    "TRIGGER_SCHEDULED_TASK",
    "Agent",
    "AgentRegistry",
    "AmqpDeadLetterQueue",
    "BackoffPolicy",
    "DeadLetterEntry",
    "DeadLetterQueue",
    "EnqueuedJob",
    "HealthStatus",
    "InMemoryDeadLetterQueue",
    "Job",
    "JobEnqueueError",
    "JobOptions",
    "JobPayload",
    "JobQueue",
    "PassthroughAgent",
    "PipelineConfigError",
    "PipelineError",
    "PipelineOrchestrator",
    "PipelineResult",
    "PipelineScheduler",
    "PipelineStepError",
    "PipelineWorker",
    "ProgressStore",
    "ProgressUpdate",
    "RunStateStore",
    "SqlRunStateStore",
    "StepSpec",
    "SupportsExecute",
    "UnknownAgentError",
    "ValidationResult",
    "agent_registry",
    "check_health",
    "create_celery_app",
    "default_job_options",
    "get_celery_app",
    "get_run_status",
    "get_test_app",
    "get_worker_queues",
    "load_agent_modules",
    "parse_cron",
    "project_run_status",
    "register_agent",
    "run_worker",
    "schedule_key",
    "trigger_pipeline_run",
    "write_heartbeat",
]

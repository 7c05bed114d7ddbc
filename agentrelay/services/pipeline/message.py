"""
Pydantic models for queue messages.

These are the wire formats exchanged through the broker: the job payload,
its fixed retry options, the job envelope rebuilt by the worker, and the
dead-letter record. Python attributes are snake_case; serialized names are
camelCase (``model_dump(by_alias=True)``).
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agentrelay.models.base import utcnow


class WireModel(BaseModel):
    """Base for camelCase wire models that also accept snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class StepSpec(WireModel):
    """One step of a pipeline: which agent to run and with what config.

    Args:
        agent_type: Registered agent type name.
        config: Agent-specific configuration.
    """

    agent_type: str = Field(min_length=1)
    config: dict[str, Any] = Field(default_factory=dict)


class JobPayload(WireModel):
    """Data carried by a pipeline job."""

    pipeline_id: str
    pipeline_run_id: str
    steps: list[StepSpec] = Field(default_factory=list)


class BackoffPolicy(WireModel):
    """Delay schedule between retry attempts.

    Args:
        type: Only ``exponential`` is supported.
        delay: Base delay in milliseconds.
    """

    type: Literal["exponential"] = "exponential"
    delay: int = 1000

    def delay_ms(self, attempts_made: int) -> int:
        """Milliseconds to wait before the retry that follows attempt ``attempts_made``.

        Retry k (scheduled after attempt k) waits ``delay * 2**(k-1)``.
        """
        return self.delay * 2 ** max(attempts_made - 1, 0)

    def countdown(self, attempts_made: int) -> float:
        """Same as :meth:`delay_ms`, in seconds."""
        return self.delay_ms(attempts_made) / 1000


class JobOptions(WireModel):
    """Retry options attached to every enqueued job."""

    attempts: int = 3
    backoff: BackoffPolicy = Field(default_factory=BackoffPolicy)


class Job(WireModel):
    """Queue envelope as seen by the worker while it holds the claim.

    Args:
        id: Queue job ID.
        payload: Pipeline run request.
        attempts_made: 1-based number of the current attempt.
        max_attempts: Attempts allowed before the job is dead-lettered.
        backoff: Retry delay schedule.
    """

    id: str
    payload: JobPayload
    attempts_made: int = 1
    max_attempts: int = 3
    backoff: BackoffPolicy = Field(default_factory=BackoffPolicy)

    @property
    def has_attempts_left(self) -> bool:
        return self.attempts_made < self.max_attempts


class ProgressUpdate(WireModel):
    """Progress event emitted before each step executes."""

    current_step: int
    total_steps: int
    current_agent: str


class DeadLetterEntry(WireModel):
    """A job that exhausted every retry attempt."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    original_job_id: str
    data: JobPayload
    error: str
    recorded_at: datetime = Field(default_factory=utcnow)

"""
Domain exceptions for business logic layer.

These exceptions are used in repositories and services to represent
business logic errors without coupling to HTTP status codes.
"""

from typing import Self


class AgentRelayError(Exception):
    """Base exception for all agentrelay-specific errors."""

    def with_context(self, detail: str) -> Self:
        """Add context information to the exception.

        Args:
            detail: Additional details about the error

        Returns:
            Self with updated message
        """
        self.args = (detail,)
        return self


# Base domain exceptions
class EntityNotFoundError(AgentRelayError):
    """Raised when an entity is not found in the database."""

    pass


# Pipeline exceptions
class PipelineNotFoundError(EntityNotFoundError):
    """Raised when a pipeline definition is not found."""

    def __init__(self, pipeline_id: str) -> None:
        super().__init__(f"Pipeline '{pipeline_id}' not found")


class PipelineRunNotFoundError(EntityNotFoundError):
    """Raised when a pipeline run is not found."""

    def __init__(self, run_id: str) -> None:
        super().__init__(f"Job '{run_id}' not found")


class PipelineError(AgentRelayError):
    """Base exception for pipeline execution errors."""

    pass


class PipelineConfigError(PipelineError):
    """Raised when a pipeline or one of its steps is misconfigured."""

    def __init__(self, message: str = "Invalid pipeline configuration", errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class UnknownAgentError(PipelineConfigError):
    """Raised when a step references an agent type nobody registered."""

    def __init__(self, agent_type: str) -> None:
        super().__init__(f"Unknown agent type '{agent_type}'")
        self.agent_type = agent_type


class PipelineStepError(PipelineError):
    """Raised when a pipeline step fails.

    Args:
        step: 1-based index or name of the failed step.
        message: Human-readable failure message from the agent.
    """

    def __init__(self, step: int | str, message: str) -> None:
        super().__init__(f"Step {step} failed: {message}")
        self.step = step
        self.message = message


class JobEnqueueError(PipelineError):
    """Raised when the job queue rejects or cannot accept a job."""

    pass


# Database errors
class DatabaseError(AgentRelayError):
    """Raised when there's a database operation error."""

    pass

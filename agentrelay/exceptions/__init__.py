"""
Exceptions for agentrelay.

Domain exceptions are raised by repositories and services; the API layer
translates them into HTTP responses in ``agentrelay.api.exception_handlers``.
"""

from .domain import (
    AgentRelayError,
    DatabaseError,
    EntityNotFoundError,
    JobEnqueueError,
    PipelineConfigError,
    PipelineError,
    PipelineNotFoundError,
    PipelineRunNotFoundError,
    PipelineStepError,
    UnknownAgentError,
)

__all__ = [
    "AgentRelayError",
    "DatabaseError",
    "EntityNotFoundError",
    "JobEnqueueError",
    "PipelineConfigError",
    "PipelineError",
    "PipelineNotFoundError",
    "PipelineRunNotFoundError",
    "PipelineStepError",
    "UnknownAgentError",
]

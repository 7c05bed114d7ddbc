"""
Pipeline-specific exceptions re-exported from the domain exception module.

All pipeline exceptions inherit from AgentRelayError via PipelineError.
"""

from agentrelay.exceptions.domain import (
    JobEnqueueError,
    PipelineConfigError,
    PipelineError,
    PipelineStepError,
    UnknownAgentError,
)

__all__ = [
    "JobEnqueueError",
    "PipelineConfigError",
    "PipelineError",
    "PipelineStepError",
    "UnknownAgentError",
]

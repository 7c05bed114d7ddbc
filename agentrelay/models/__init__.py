"""
agentrelay data models.

This package contains the SQLModel-based models that define the database schema
the engine reads and writes.
"""

from .base import PipelineRunStatus, new_id, utcnow
from .pipeline_definition import (
    PipelineDefinition,
    PipelineDefinitionBase,
    PipelineDefinitionRead,
)
from .pipeline_run import PipelineRun, PipelineRunBase

__all__ = [
    "PipelineDefinition",
    "PipelineDefinitionBase",
    "PipelineDefinitionRead",
    "PipelineRun",
    "PipelineRunBase",
    "PipelineRunStatus",
    "new_id",
    "utcnow",
]

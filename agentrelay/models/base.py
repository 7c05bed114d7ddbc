"""
Base definitions shared by agentrelay models.
"""

import enum
import uuid
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a new string primary key."""
    return str(uuid.uuid4())


class PipelineRunStatus(str, enum.Enum):
    """Enumeration of possible pipeline run status values."""

    queued = "queued"
    running = "running"
    completed = "completed"
    failed = "failed"

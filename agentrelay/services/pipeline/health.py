"""Broker health probe and worker heartbeat file."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel

from agentrelay.models.base import utcnow
from agentrelay.utils.logger import logger

if TYPE_CHECKING:
    from kombu import Connection


class HealthStatus(BaseModel):
    """Result of a health probe."""

    status: Literal["ok", "degraded"]
    broker: bool
    checked_at: datetime


def check_health(connection: Connection, timeout: float = 2.0) -> HealthStatus:
    """Probe the broker connection once.

    Args:
        connection: Kombu connection, e.g. ``app.connection_for_read()``.
        timeout: Seconds to wait for the broker.

    Returns:
        ``ok`` when the broker accepts a connection, ``degraded`` otherwise.
    """
    try:
        connection.ensure_connection(max_retries=1, timeout=timeout)
        broker_ok = True
    except Exception as e:
        logger.warning(f"Broker health check failed: {e}")
        broker_ok = False
    finally:
        connection.release()

    return HealthStatus(
        status="ok" if broker_ok else "degraded",
        broker=broker_ok,
        checked_at=utcnow(),
    )


def write_heartbeat(path: str | Path) -> Path:
    """Write the current UTC time to ``path`` (ISO format).

    Container liveness probes check the file's age.
    """
    heartbeat = Path(path)
    heartbeat.parent.mkdir(parents=True, exist_ok=True)
    heartbeat.write_text(utcnow().isoformat())
    return heartbeat

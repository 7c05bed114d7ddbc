"""
Dead letter queue for jobs that exhausted every retry attempt.

Entries are published as persistent JSON messages to a durable RabbitMQ
queue through the Celery app's producer pool. Nothing consumes the queue
automatically; operators inspect or replay it by hand.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from kombu import Queue

from agentrelay.settings import settings
from agentrelay.utils.logger import logger

from .message import DeadLetterEntry

if TYPE_CHECKING:
    from celery import Celery


class DeadLetterQueue(Protocol):
    """Destination for permanently failed jobs."""

    def publish(self, entry: DeadLetterEntry) -> None: ...


class AmqpDeadLetterQueue:
    """Publishes dead-letter entries to a durable AMQP queue.

    Args:
        app: Celery app whose connection pool is used.
        queue_name: DLQ name (default: ``settings.pipeline_dead_letter_queue``).
    """

    def __init__(self, app: Celery, queue_name: str | None = None) -> None:
        self.app = app
        self.queue_name = queue_name or settings.pipeline_dead_letter_queue
        self._queue = Queue(self.queue_name, durable=True)

    def publish(self, entry: DeadLetterEntry) -> None:
        """Publish an entry to the dead letter queue.

        Publishing failures are logged, never raised: the job is already
        finished and the run row already holds the error.
        """
        try:
            with self.app.producer_or_acquire() as producer:
                producer.publish(
                    entry.to_wire(),
                    exchange="",
                    routing_key=self.queue_name,
                    serializer="json",
                    delivery_mode="persistent",
                    declare=[self._queue],
                    retry=True,
                )
        except Exception as e:
            logger.error(f"Failed to route job {entry.original_job_id} to DLQ: {e}")
            return

        logger.warning(
            f"Job {entry.original_job_id} (run '{entry.data.pipeline_run_id}') "
            f"sent to dead letter queue: {entry.error}"
        )


class InMemoryDeadLetterQueue:
    """Dead letter queue kept in a list, for tests and local runs."""

    def __init__(self) -> None:
        self.entries: list[DeadLetterEntry] = []

    def publish(self, entry: DeadLetterEntry) -> None:
        self.entries.append(entry)
        logger.warning(f"Job {entry.original_job_id} dead-lettered: {entry.error}")

    def __len__(self) -> int:
        return len(self.entries)

"""
Cron scheduling of pipeline runs through Celery beat.

Each scheduled pipeline gets one ``beat_schedule`` entry keyed
``scheduled-pipeline-{id}`` that fires ``agentrelay.pipeline.trigger_scheduled``.
Beat reads the schedule when it starts, so entries are loaded before the
worker is launched with ``--beat``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from celery.schedules import ParseException, crontab

from agentrelay.exceptions import PipelineConfigError
from agentrelay.models.pipeline_definition import PipelineDefinition
from agentrelay.utils.logger import logger

from .broker import TRIGGER_SCHEDULED_TASK

if TYPE_CHECKING:
    from celery import Celery


def schedule_key(pipeline_id: str) -> str:
    return f"scheduled-pipeline-{pipeline_id}"


def parse_cron(expression: str) -> crontab:
    """Parse a 5-field cron expression (minute hour day month weekday).

    Raises:
        PipelineConfigError: If the expression is not a valid 5-field cron.
    """
    fields = expression.split()
    if len(fields) != 5:
        raise PipelineConfigError(f"Invalid cron expression '{expression}': expected 5 fields")
    minute, hour, day_of_month, month_of_year, day_of_week = fields
    try:
        return crontab(
            minute=minute,
            hour=hour,
            day_of_month=day_of_month,
            month_of_year=month_of_year,
            day_of_week=day_of_week,
        )
    except (ValueError, ParseException) as e:
        raise PipelineConfigError(f"Invalid cron expression '{expression}': {e}") from e


class PipelineScheduler:
    """Maintains beat entries for scheduled pipelines.

    Args:
        app: Celery app whose ``beat_schedule`` is managed.
    """

    def __init__(self, app: Celery):
        self.app = app

    @property
    def entries(self) -> dict:
        if self.app.conf.beat_schedule is None:
            self.app.conf.beat_schedule = {}
        return self.app.conf.beat_schedule

    def schedule_pipeline(self, definition: PipelineDefinition) -> str | None:
        """Add or replace the beat entry of a pipeline.

        Returns:
            The schedule key, or None when the definition is paused.

        Raises:
            PipelineConfigError: If the definition has no or an invalid schedule.
        """
        if definition.is_paused:
            logger.info(f"Pipeline '{definition.id}' is paused, not scheduling")
            return None
        return self._add_entry(definition)

    def pause_pipeline(self, pipeline_id: str) -> bool:
        """Remove the beat entry of a pipeline.

        Returns:
            Whether an entry was removed.
        """
        removed = self.entries.pop(schedule_key(pipeline_id), None) is not None
        if removed:
            logger.info(f"Paused schedule of pipeline '{pipeline_id}'")
        return removed

    def resume_pipeline(self, definition: PipelineDefinition) -> str:
        """Re-add the beat entry of a previously paused pipeline."""
        return self._add_entry(definition)

    def load(self, definitions: Iterable[PipelineDefinition]) -> list[str]:
        """Schedule every given definition, skipping paused ones.

        Returns:
            Keys of the scheduled entries.
        """
        keys = [key for d in definitions if (key := self.schedule_pipeline(d)) is not None]
        logger.info(f"Loaded {len(keys)} pipeline schedule(s)")
        return keys

    def _add_entry(self, definition: PipelineDefinition) -> str:
        if not definition.schedule:
            raise PipelineConfigError(f"Pipeline '{definition.id}' has no schedule")

        key = schedule_key(definition.id)
        self.entries[key] = {
            "task": TRIGGER_SCHEDULED_TASK,
            "schedule": parse_cron(definition.schedule),
            "args": (definition.id,),
        }
        logger.info(f"Scheduled pipeline '{definition.id}' with '{definition.schedule}'")
        return key

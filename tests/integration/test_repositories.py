"""Integration tests for repository layer: real SQLite, no mocks."""

from datetime import UTC, datetime

import pytest

from agentrelay.exceptions import DatabaseError, EntityNotFoundError, PipelineNotFoundError
from agentrelay.models import PipelineRun, PipelineRunStatus
from agentrelay.repositories import (
    BaseRepository,
    PipelineDefinitionRepository,
    PipelineRunRepository,
)

# ---------------------------------------------------------------------------
# BaseRepository
# ---------------------------------------------------------------------------


class TestBaseRepository:
    @pytest.mark.asyncio
    async def test_get_not_found(self, test_session):
        repo = BaseRepository(test_session, PipelineRun)

        with pytest.raises(EntityNotFoundError):
            await repo.get("nope")

    @pytest.mark.asyncio
    async def test_list_all_with_filters(self, test_session):
        repo = PipelineRunRepository(test_session)
        await repo.create_queued("a", 1)
        await repo.create_queued("a", 1)
        await repo.create_queued("b", 1)

        assert len(await repo.list_all()) == 3
        assert len(await repo.list_all(pipeline_id="a")) == 2

    @pytest.mark.asyncio
    async def test_update_exclude_unset(self, test_session):
        repo = PipelineRunRepository(test_session)
        run = await repo.create_queued("a", 2)

        await repo.update(run, {"current_agent": "writer", "error": None})

        assert run.current_agent == "writer"
        assert run.error is None


# ---------------------------------------------------------------------------
# PipelineDefinitionRepository
# ---------------------------------------------------------------------------


class TestPipelineDefinitionRepository:
    @pytest.mark.asyncio
    async def test_upsert_creates_then_updates(self, test_session):
        repo = PipelineDefinitionRepository(test_session)
        steps = [{"agentType": "passthrough", "config": {}}]

        created = await repo.upsert("digest", "Digest", steps)
        updated = await repo.upsert("digest", "Daily Digest", steps * 2, schedule="0 6 * * *")

        assert created.id == updated.id == "digest"
        assert updated.name == "Daily Digest"
        assert len(updated.steps) == 2
        assert len(await repo.list_all()) == 1

    @pytest.mark.asyncio
    async def test_get_missing(self, test_session):
        with pytest.raises(PipelineNotFoundError, match="Pipeline 'ghost' not found"):
            await PipelineDefinitionRepository(test_session).get("ghost")

    @pytest.mark.asyncio
    async def test_list_schedulable(self, seed_pipeline, test_session):
        await seed_pipeline("hourly", schedule="0 * * * *")
        await seed_pipeline("paused", schedule="0 * * * *", is_paused=True)
        await seed_pipeline("manual")

        schedulable = await PipelineDefinitionRepository(test_session).list_schedulable()

        assert [d.id for d in schedulable] == ["hourly"]

    @pytest.mark.asyncio
    async def test_set_paused(self, seed_pipeline, test_session):
        await seed_pipeline("hourly", schedule="0 * * * *")
        repo = PipelineDefinitionRepository(test_session)

        paused = await repo.set_paused("hourly", True)

        assert paused.is_paused is True
        assert await repo.list_schedulable() == []

        resumed = await repo.set_paused("hourly", False)

        assert resumed.is_paused is False
        assert [d.id for d in await repo.list_schedulable()] == ["hourly"]

    @pytest.mark.asyncio
    async def test_set_paused_missing(self, test_session):
        with pytest.raises(PipelineNotFoundError):
            await PipelineDefinitionRepository(test_session).set_paused("ghost", True)


# ---------------------------------------------------------------------------
# PipelineRunRepository
# ---------------------------------------------------------------------------


class TestPipelineRunRepository:
    @pytest.mark.asyncio
    async def test_create_queued(self, test_session):
        run = await PipelineRunRepository(test_session).create_queued("digest", 3)

        assert run.status == PipelineRunStatus.queued
        assert run.current_step == 0
        assert run.total_steps == 3
        assert run.result is None
        assert run.error is None

    @pytest.mark.asyncio
    async def test_lifecycle_completed(self, test_session):
        repo = PipelineRunRepository(test_session)
        run = await repo.create_queued("digest", 2)

        await repo.mark_running(run.id)
        await repo.record_progress(run.id, 1, 2, "research")
        await repo.record_progress(run.id, 2, 2, "writer")
        done = await repo.mark_completed(run.id, {"steps": [1, 2]})

        assert done.status == PipelineRunStatus.completed
        assert done.current_step == 2
        assert done.current_agent == "writer"
        assert done.result == {"steps": [1, 2]}
        assert done.error is None
        assert done.started_at is not None
        assert done.completed_at is not None

    @pytest.mark.asyncio
    async def test_lifecycle_failed(self, test_session):
        repo = PipelineRunRepository(test_session)
        run = await repo.create_queued("digest", 2)

        await repo.mark_running(run.id)
        failed = await repo.mark_failed(run.id, "Variety engine exploded", failed_step=2)

        assert failed.status == PipelineRunStatus.failed
        assert failed.error == "Variety engine exploded"
        assert failed.failed_step == 2
        assert failed.result is None

    @pytest.mark.asyncio
    async def test_mark_running_clears_previous_attempt(self, test_session):
        """A retried attempt never carries the error of the previous one."""
        repo = PipelineRunRepository(test_session)
        run = await repo.create_queued("digest", 2)
        await repo.mark_running(run.id)
        await repo.record_progress(run.id, 2, 2, "writer")
        await repo.mark_failed(run.id, "boom", failed_step=2)

        retried = await repo.mark_running(run.id)

        assert retried.status == PipelineRunStatus.running
        assert retried.current_step == 0
        assert retried.error is None
        assert retried.failed_step is None
        assert retried.completed_at is None

    @pytest.mark.asyncio
    async def test_attach_job(self, test_session):
        repo = PipelineRunRepository(test_session)
        run = await repo.create_queued("digest", 1)

        updated = await repo.attach_job(run.id, "job-7")

        assert updated.job_id == "job-7"

    @pytest.mark.asyncio
    async def test_unserializable_result_raises_database_error(self, db, test_session):
        """A rejected write is rolled back and leaves the stored row untouched."""
        repo = PipelineRunRepository(test_session)
        run = await repo.create_queued("digest", 1)
        await repo.mark_running(run.id)

        with pytest.raises(DatabaseError, match="Failed to update PipelineRun"):
            await repo.mark_completed(run.id, {"steps": [{"at": datetime(2026, 1, 1, tzinfo=UTC)}]})

        async with db.get_async_session_context() as session:
            stored = await PipelineRunRepository(session).get(run.id)
        assert stored.status == PipelineRunStatus.running
        assert stored.result is None

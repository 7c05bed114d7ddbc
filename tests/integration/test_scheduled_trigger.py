"""Integration tests for the scheduled trigger task and the pipeline CLI commands."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agentrelay.cli import main as cli
from agentrelay.exceptions import PipelineConfigError, PipelineNotFoundError
from agentrelay.models import PipelineRunStatus
from agentrelay.repositories import PipelineDefinitionRepository, PipelineRunRepository
from agentrelay.services.pipeline import PipelineScheduler, tasks
from agentrelay.services.pipeline.broker import get_test_app


@pytest.fixture
def kept_db(db):
    """The test database, kept open when code under test closes its manager."""
    with patch.object(db, "close", AsyncMock()):
        yield db


class TestTriggerScheduled:
    @pytest.mark.asyncio
    async def test_creates_and_enqueues_run(self, kept_db, seed_pipeline):
        await seed_pipeline("digest", schedule="0 6 * * *")
        app = MagicMock()
        app.send_task.return_value = MagicMock(id="job-5")

        with patch.object(tasks, "DatabaseManager", return_value=kept_db):
            result = await tasks._trigger_scheduled("digest", app)

        assert result["jobId"] == "job-5"
        assert result["status"] == "queued"
        async with kept_db.get_async_session_context() as session:
            run = await PipelineRunRepository(session).get(result["pipelineRunId"])
        assert run.status == PipelineRunStatus.queued
        assert run.job_id == "job-5"

    @pytest.mark.asyncio
    async def test_paused_pipeline_skipped(self, kept_db, seed_pipeline):
        await seed_pipeline("digest", schedule="0 6 * * *", is_paused=True)
        app = MagicMock()

        with patch.object(tasks, "DatabaseManager", return_value=kept_db):
            result = await tasks._trigger_scheduled("digest", app)

        assert result == {"pipelineId": "digest", "status": "skipped"}
        app.send_task.assert_not_called()


class TestImportPipelines:
    @pytest.mark.asyncio
    async def test_imports_definitions(self, kept_db, tmp_path):
        path = tmp_path / "pipelines.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "id": "digest",
                        "name": "Daily digest",
                        "steps": [{"agentType": "passthrough"}],
                        "schedule": "0 6 * * *",
                    },
                    {"id": "adhoc", "steps": [{"agentType": "passthrough"}], "isPaused": True},
                ]
            )
        )

        with patch.object(cli, "db_manager", kept_db):
            count = await cli.import_pipelines(str(path))

        assert count == 2
        async with kept_db.get_async_session_context() as session:
            repo = PipelineDefinitionRepository(session)
            digest = await repo.get("digest")
            adhoc = await repo.get("adhoc")
        assert digest.steps == [{"agentType": "passthrough", "config": {}}]
        assert digest.schedule == "0 6 * * *"
        assert adhoc.name == "adhoc"
        assert adhoc.is_paused is True

    @pytest.mark.asyncio
    async def test_rejects_definition_without_steps(self, kept_db, tmp_path):
        path = tmp_path / "pipelines.json"
        path.write_text(json.dumps([{"id": "empty", "steps": []}]))

        with patch.object(cli, "db_manager", kept_db), pytest.raises(PipelineConfigError):
            await cli.import_pipelines(str(path))


class TestPauseResume:
    """``agentrelay pipeline pause|resume`` persist the flag the scheduled task honours."""

    @pytest.fixture
    def beat_app(self):
        app = get_test_app()
        with patch("agentrelay.services.pipeline.get_celery_app", return_value=app):
            yield app

    @pytest.mark.asyncio
    async def test_pause_stops_scheduled_runs(self, kept_db, seed_pipeline, beat_app):
        definition = await seed_pipeline("digest", schedule="0 6 * * *")
        PipelineScheduler(beat_app).schedule_pipeline(definition)
        app = MagicMock()

        with patch.object(cli, "db_manager", kept_db):
            keys = await cli.set_pipeline_paused("digest", True)
        with patch.object(tasks, "DatabaseManager", return_value=kept_db):
            result = await tasks._trigger_scheduled("digest", app)

        assert keys == []
        assert result == {"pipelineId": "digest", "status": "skipped"}
        app.send_task.assert_not_called()

    @pytest.mark.asyncio
    async def test_resume_restores_schedule(self, kept_db, seed_pipeline, beat_app):
        await seed_pipeline("digest", schedule="0 6 * * *", is_paused=True)
        app = MagicMock()
        app.send_task.return_value = MagicMock(id="job-8")

        with patch.object(cli, "db_manager", kept_db):
            keys = await cli.set_pipeline_paused("digest", False)
        with patch.object(tasks, "DatabaseManager", return_value=kept_db):
            result = await tasks._trigger_scheduled("digest", app)

        assert keys == ["scheduled-pipeline-digest"]
        assert result["status"] == "queued"
        async with kept_db.get_async_session_context() as session:
            digest = await PipelineDefinitionRepository(session).get("digest")
        assert digest.is_paused is False

    @pytest.mark.asyncio
    async def test_unknown_pipeline(self, kept_db, beat_app):
        with patch.object(cli, "db_manager", kept_db), pytest.raises(PipelineNotFoundError):
            await cli.set_pipeline_paused("ghost", True)

"""Fixtures for integration tests: seeded pipeline definitions on in-memory SQLite."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import pytest_asyncio

from agentrelay.models import PipelineDefinition
from agentrelay.repositories import PipelineDefinitionRepository

type SeedPipeline = Callable[..., Awaitable[PipelineDefinition]]


@pytest_asyncio.fixture
async def seed_pipeline(test_session) -> SeedPipeline:
    """Factory storing a pipeline definition in the test database."""
    repo = PipelineDefinitionRepository(test_session)

    async def _seed(
        id: str = "digest",
        steps: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> PipelineDefinition:
        if steps is None:
            steps = [{"agentType": "passthrough", "config": {}}]
        return await repo.upsert(id, kwargs.pop("name", id.title()), steps, **kwargs)

    return _seed

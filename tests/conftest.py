"""Global test configuration: in-memory database, API client and pipeline doubles."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from agentrelay.api.app import create_app
from agentrelay.api.dependencies import get_agent_registry, get_job_queue
from agentrelay.exceptions import JobEnqueueError
from agentrelay.services.pipeline.agents import AgentRegistry, PassthroughAgent
from agentrelay.services.pipeline.message import JobPayload
from agentrelay.services.pipeline.queue import EnqueuedJob
from agentrelay.utils.database import get_async_session
from agentrelay.utils.db_manager import DatabaseManager

# ─── Pipeline doubles ────────────────────────────────────────────────────────


class RecordingAgent:
    """Agent double that records its calls and returns, transforms or raises."""

    def __init__(
        self,
        type: str,
        output: Any = None,
        error: Exception | None = None,
        transform: Callable[[Any], Any] | None = None,
    ) -> None:
        self.type = type
        self.output = output
        self.error = error
        self.transform = transform
        self.calls: list[tuple[Any, Any]] = []

    async def execute(self, input: Any, config: Any = None) -> Any:
        self.calls.append((input, config))
        if self.error is not None:
            raise self.error
        if self.transform is not None:
            return self.transform(input)
        return self.output


class FakeRunStore:
    """RunStateStore double keeping an ordered event log."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    async def mark_running(self, run_id: str) -> None:
        self.events.append(("running", run_id))

    async def record_progress(
        self, run_id: str, current_step: int, total_steps: int, current_agent: str
    ) -> None:
        self.events.append(("progress", run_id, current_step, total_steps, current_agent))

    async def mark_completed(self, run_id: str, result: dict[str, Any]) -> None:
        self.events.append(("completed", run_id, result))

    async def mark_failed(self, run_id: str, error: str, failed_step: int | None = None) -> None:
        self.events.append(("failed", run_id, error, failed_step))

    @property
    def statuses(self) -> list[str]:
        return [e[0] for e in self.events if e[0] != "progress"]


class RecordingJobQueue:
    """JobQueue double: keeps enqueued payloads, optionally rejects them."""

    def __init__(self) -> None:
        self.payloads: list[JobPayload] = []
        self.fail_with: str | None = None

    def enqueue(self, payload: JobPayload) -> EnqueuedJob:
        if self.fail_with is not None:
            raise JobEnqueueError(self.fail_with)
        self.payloads.append(payload)
        return EnqueuedJob(id=f"job-{len(self.payloads)}")


@pytest.fixture
def make_agent() -> type[RecordingAgent]:
    """Factory for RecordingAgent instances."""
    return RecordingAgent


@pytest.fixture
def run_store() -> FakeRunStore:
    return FakeRunStore()


@pytest.fixture
def job_queue() -> RecordingJobQueue:
    return RecordingJobQueue()


@pytest.fixture
def registry() -> AgentRegistry:
    """Fresh registry with only the passthrough agent."""
    reg = AgentRegistry()
    reg.register(PassthroughAgent)
    return reg


# ─── Database ────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[DatabaseManager]:
    """DatabaseManager over a shared in-memory SQLite database."""
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:", echo=False)
    await manager.create_db_and_tables_async()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def test_session(db: DatabaseManager) -> AsyncGenerator[AsyncSession]:
    """Create test database session."""
    async with db.async_session_factory() as session:
        yield session
        await session.rollback()


# ─── API ─────────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(
    test_session: AsyncSession, job_queue: RecordingJobQueue, registry: AgentRegistry
) -> AsyncGenerator[AsyncClient]:
    """Create test API client wired to the test session, queue and registry."""
    app = create_app()

    async def override_get_session() -> AsyncGenerator[AsyncSession]:
        yield test_session

    app.dependency_overrides[get_async_session] = override_get_session
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    app.dependency_overrides[get_agent_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

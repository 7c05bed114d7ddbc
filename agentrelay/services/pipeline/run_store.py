"""
Run state persistence used by the worker and the orchestrator.

Each write opens its own session and commits immediately, so the API sees
every transition as soon as the worker makes it.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from agentrelay.repositories.pipeline_run_repository import PipelineRunRepository

type SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class RunStateStore(Protocol):
    """Writes the lifecycle of a pipeline run."""

    async def mark_running(self, run_id: str) -> None: ...

    async def record_progress(
        self, run_id: str, current_step: int, total_steps: int, current_agent: str
    ) -> None: ...

    async def mark_completed(self, run_id: str, result: dict[str, Any]) -> None: ...

    async def mark_failed(self, run_id: str, error: str, failed_step: int | None = None) -> None: ...


class SqlRunStateStore:
    """RunStateStore backed by :class:`PipelineRunRepository`.

    Args:
        session_factory: Returns an async context manager yielding a session,
            e.g. ``DatabaseManager.get_async_session_context``.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    async def mark_running(self, run_id: str) -> None:
        async with self.session_factory() as session:
            await PipelineRunRepository(session).mark_running(run_id)

    async def record_progress(
        self, run_id: str, current_step: int, total_steps: int, current_agent: str
    ) -> None:
        async with self.session_factory() as session:
            await PipelineRunRepository(session).record_progress(
                run_id, current_step, total_steps, current_agent
            )

    async def mark_completed(self, run_id: str, result: dict[str, Any]) -> None:
        async with self.session_factory() as session:
            await PipelineRunRepository(session).mark_completed(run_id, result)

    async def mark_failed(self, run_id: str, error: str, failed_step: int | None = None) -> None:
        async with self.session_factory() as session:
            await PipelineRunRepository(session).mark_failed(run_id, error, failed_step)

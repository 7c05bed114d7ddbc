"""
PipelineOrchestrator: runs an ordered list of agents as a single pass.

Each step receives the previous step's output. Before a step executes the
orchestrator reports progress (callback and persistence hook), so pollers see
a monotonically increasing ``current_step`` while the run is in flight. The
first failing step ends the run; later steps are never invoked and earlier
side effects are not rolled back. Retries are a queue concern, never handled
here.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from agentrelay.exceptions import PipelineConfigError
from agentrelay.types import AgentConfig
from agentrelay.utils.logger import logger

from .agents import SupportsExecute
from .message import ProgressUpdate

type ProgressCallback = Callable[[ProgressUpdate], Awaitable[None] | None]


class ProgressStore(Protocol):
    """Persistence hook called at every step boundary."""

    async def record_progress(
        self, run_id: str, current_step: int, total_steps: int, current_agent: str
    ) -> None: ...


class PipelineResult(BaseModel):
    """Outcome of one orchestrator pass.

    ``steps`` holds every step's output in order when completed.
    ``error`` and ``failed_step`` (1-based) are set when failed.
    """

    status: Literal["completed", "failed"]
    steps: list[Any] = Field(default_factory=list)
    error: str | None = None
    failed_step: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"

    @property
    def output(self) -> Any:
        """Output of the last step, or None."""
        return self.steps[-1] if self.steps else None


class PipelineOrchestrator:
    """Sequential step runner.

    Args:
        progress_store: Hook persisting the step that is about to execute.
            ``None`` disables persistence (progress callbacks still fire).
        step_timeout: Optional per-step time limit in seconds. A step that
            exceeds it fails like any other step.
    """

    def __init__(self, progress_store: ProgressStore | None = None, step_timeout: float | None = None):
        self.progress_store = progress_store
        self.step_timeout = step_timeout

    async def run(
        self,
        pipeline_run_id: str,
        agents: Sequence[SupportsExecute],
        initial_input: Any,
        on_progress: ProgressCallback | None = None,
        configs: Sequence[AgentConfig] | None = None,
    ) -> PipelineResult:
        """Execute ``agents`` in order.

        Args:
            pipeline_run_id: Run whose progress is persisted.
            agents: Already resolved agents, executed in list order.
            initial_input: Input of step 1.
            on_progress: Called with a ProgressUpdate before each step.
            configs: Per-step configs passed to ``execute``, aligned with ``agents``.

        Returns:
            A completed result with every step output, or a failed result
            naming the 1-based step that raised.

        Raises:
            PipelineConfigError: If ``agents`` is empty or ``configs`` is misaligned.
        """
        if not agents:
            raise PipelineConfigError(f"Pipeline run '{pipeline_run_id}' has no steps")
        if configs is not None and len(configs) != len(agents):
            raise PipelineConfigError(
                f"Pipeline run '{pipeline_run_id}' got {len(configs)} configs for {len(agents)} agents"
            )

        total_steps = len(agents)
        steps: list[Any] = []
        current_input = initial_input

        for index, agent in enumerate(agents):
            step_number = index + 1
            config = configs[index] if configs is not None else {}

            update = ProgressUpdate(
                current_step=step_number, total_steps=total_steps, current_agent=agent.type
            )
            if on_progress is not None:
                maybe_awaitable = on_progress(update)
                if inspect.isawaitable(maybe_awaitable):
                    await maybe_awaitable

            if self.progress_store is not None:
                await self.progress_store.record_progress(
                    pipeline_run_id, step_number, total_steps, agent.type
                )

            logger.debug(
                f"[run={pipeline_run_id} step={step_number}/{total_steps}] "
                f"Executing agent '{agent.type}'"
            )

            try:
                output = await self._execute(agent, current_input, config)
            except Exception as e:
                message = str(e) or type(e).__name__
                logger.warning(
                    f"[run={pipeline_run_id} step={step_number}/{total_steps}] "
                    f"Agent '{agent.type}' failed: {message}"
                )
                return PipelineResult(status="failed", error=message, failed_step=step_number)

            steps.append(output)
            current_input = output

        logger.info(f"[run={pipeline_run_id}] Completed all {total_steps} steps")
        return PipelineResult(status="completed", steps=steps)

    async def _execute(self, agent: SupportsExecute, input: Any, config: AgentConfig) -> Any:
        if self.step_timeout is None:
            return await agent.execute(input, config)
        timeout = asyncio.timeout(self.step_timeout)
        try:
            async with timeout:
                return await agent.execute(input, config)
        except TimeoutError:
            if timeout.expired():
                raise TimeoutError(f"Step timed out after {self.step_timeout:g}s") from None
            raise

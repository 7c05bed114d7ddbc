"""Unit tests for PipelineOrchestrator: sequencing, short-circuit, progress, timeouts."""

from __future__ import annotations

import asyncio

import pytest

from agentrelay.exceptions import PipelineConfigError
from agentrelay.services.pipeline.message import ProgressUpdate
from agentrelay.services.pipeline.orchestrator import PipelineOrchestrator


def _append(key: str):
    return lambda data: {**data, key: True}


# ─── Sequencing ──────────────────────────────────────────────────────────────


class TestSequencing:
    """Each step receives the previous step's output."""

    @pytest.mark.asyncio
    async def test_three_agents_accumulate_output(self, make_agent):
        """A/B/C each add a key; the last step output holds all of them."""
        agents = [
            make_agent("a", transform=_append("fromA")),
            make_agent("b", transform=_append("fromB")),
            make_agent("c", transform=_append("fromC")),
        ]

        result = await PipelineOrchestrator().run("run-1", agents, {"seed": "data"})

        assert result.status == "completed"
        assert len(result.steps) == 3
        assert result.steps[2] == {"seed": "data", "fromA": True, "fromB": True, "fromC": True}
        assert result.output == result.steps[2]
        assert result.error is None
        assert result.failed_step is None

    @pytest.mark.asyncio
    async def test_step_inputs_chain(self, make_agent):
        """Step 1 gets the initial input, step k gets step k-1's output."""
        first = make_agent("first", output="one")
        second = make_agent("second", output="two")

        await PipelineOrchestrator().run("run-1", [first, second], "initial")

        assert first.calls[0][0] == "initial"
        assert second.calls[0][0] == "one"

    @pytest.mark.asyncio
    async def test_configs_passed_per_step(self, make_agent):
        """Each agent receives its own step config."""
        first = make_agent("first", output=1)
        second = make_agent("second", output=2)

        await PipelineOrchestrator().run(
            "run-1", [first, second], {}, configs=[{"tone": "dry"}, {"limit": 3}]
        )

        assert first.calls[0][1] == {"tone": "dry"}
        assert second.calls[0][1] == {"limit": 3}

    @pytest.mark.asyncio
    async def test_empty_agent_list_rejected(self):
        """A pipeline with no steps cannot run."""
        with pytest.raises(PipelineConfigError):
            await PipelineOrchestrator().run("run-1", [], {})

    @pytest.mark.asyncio
    async def test_misaligned_configs_rejected(self, make_agent):
        with pytest.raises(PipelineConfigError):
            await PipelineOrchestrator().run("run-1", [make_agent("a")], {}, configs=[{}, {}])


# ─── Failure ─────────────────────────────────────────────────────────────────


class TestFailure:
    """The first failing step ends the run."""

    @pytest.mark.asyncio
    async def test_second_step_failure(self, make_agent):
        """A 2-step pipeline failing at step 2 reports the error and the step."""
        agents = [
            make_agent("research", output={"topics": []}),
            make_agent("variety", error=RuntimeError("Variety engine exploded")),
        ]

        result = await PipelineOrchestrator().run("run-1", agents, {})

        assert result.model_dump() == {
            "status": "failed",
            "steps": [],
            "error": "Variety engine exploded",
            "failed_step": 2,
        }
        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_agents_after_failure_never_called(self, make_agent):
        """Agents after the failing one are never invoked."""
        spy = make_agent("spy", output="never")
        agents = [
            make_agent("ok", output="fine"),
            make_agent("boom", error=ValueError("boom")),
            spy,
        ]

        result = await PipelineOrchestrator().run("run-1", agents, {})

        assert result.failed_step == 2
        assert spy.calls == []

    @pytest.mark.asyncio
    async def test_error_without_message_uses_type_name(self, make_agent):
        result = await PipelineOrchestrator().run("run-1", [make_agent("x", error=KeyError())], {})

        assert result.error == "KeyError"

    @pytest.mark.asyncio
    async def test_step_timeout_is_a_step_failure(self, make_agent):
        """A step exceeding the per-step timeout fails like any other step."""

        class SlowAgent:
            type = "slow"

            async def execute(self, input, config=None):
                await asyncio.sleep(5)

        orchestrator = PipelineOrchestrator(step_timeout=0.01)
        result = await orchestrator.run("run-1", [make_agent("fast", output=1), SlowAgent()], {})

        assert result.status == "failed"
        assert result.failed_step == 2
        assert result.error == "Step timed out after 0.01s"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        """CancelledError is never turned into a failed result."""

        class CancelledAgent:
            type = "cancelled"

            async def execute(self, input, config=None):
                raise asyncio.CancelledError

        with pytest.raises(asyncio.CancelledError):
            await PipelineOrchestrator().run("run-1", [CancelledAgent()], {})


# ─── Progress ────────────────────────────────────────────────────────────────


class TestProgress:
    """Progress is reported before every step."""

    @pytest.mark.asyncio
    async def test_progress_monotonic(self, make_agent):
        """N agents produce N updates numbered 1..N with totalSteps == N."""
        updates: list[ProgressUpdate] = []
        agents = [make_agent(name, output=name) for name in ("research", "writer", "editor")]

        await PipelineOrchestrator().run("run-1", agents, {}, on_progress=updates.append)

        assert [u.current_step for u in updates] == [1, 2, 3]
        assert {u.total_steps for u in updates} == {3}
        assert [u.current_agent for u in updates] == ["research", "writer", "editor"]

    @pytest.mark.asyncio
    async def test_progress_emitted_before_step(self, make_agent):
        """The update for step k is seen before agent k executes."""
        seen: list[str] = []
        agent = make_agent("writer", output="draft")

        def on_progress(update: ProgressUpdate) -> None:
            seen.append(f"progress:{update.current_step}:{len(agent.calls)}")

        await PipelineOrchestrator().run("run-1", [agent], {}, on_progress=on_progress)

        assert seen == ["progress:1:0"]

    @pytest.mark.asyncio
    async def test_async_progress_callback_awaited(self, make_agent):
        updates: list[int] = []

        async def on_progress(update: ProgressUpdate) -> None:
            updates.append(update.current_step)

        await PipelineOrchestrator().run(
            "run-1", [make_agent("a"), make_agent("b")], {}, on_progress=on_progress
        )

        assert updates == [1, 2]

    @pytest.mark.asyncio
    async def test_progress_persisted_up_to_failed_step(self, make_agent, run_store):
        """The progress store sees every step up to and including the failing one."""
        agents = [
            make_agent("research", output={}),
            make_agent("writer", error=RuntimeError("no words")),
            make_agent("editor"),
        ]

        await PipelineOrchestrator(progress_store=run_store).run("run-9", agents, {})

        assert run_store.events == [
            ("progress", "run-9", 1, 3, "research"),
            ("progress", "run-9", 2, 3, "writer"),
        ]

    def test_progress_update_wire_format(self):
        update = ProgressUpdate(current_step=1, total_steps=3, current_agent="writer")

        assert update.to_wire() == {"currentStep": 1, "totalSteps": 3, "currentAgent": "writer"}

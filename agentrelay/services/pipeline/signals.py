"""
Celery signal handlers for pipeline task logging and agent loading.

Logs task start/complete/retry/failure events through loguru, prefixed with
the pipeline and run the task belongs to.
"""

from __future__ import annotations

import time
from typing import Any

from celery.signals import task_failure, task_postrun, task_prerun, task_retry, worker_init

from agentrelay.settings import settings
from agentrelay.utils.logger import logger

from .agents import load_agent_modules

_started: dict[str, float] = {}


def _log_prefix(kwargs: dict[str, Any] | None) -> str:
    payload = (kwargs or {}).get("payload") or {}
    pipeline_id = payload.get("pipelineId", "")
    run_id = payload.get("pipelineRunId", "")
    return f"[pipeline={pipeline_id} run={run_id}] " if pipeline_id else ""


@worker_init.connect
def load_agents_on_worker_init(**_: Any) -> None:
    """Register agents from ``settings.agent_modules`` before consuming."""
    load_agent_modules(settings.agent_modules)


@task_prerun.connect
def log_task_start(task_id: str, task: Any, kwargs: dict[str, Any] | None = None, **_: Any) -> None:
    _started[task_id] = time.monotonic()
    logger.debug(f"{_log_prefix(kwargs)}Starting task '{task.name}' (id={task_id})")


@task_postrun.connect
def log_task_done(
    task_id: str,
    task: Any,
    kwargs: dict[str, Any] | None = None,
    state: str | None = None,
    **_: Any,
) -> None:
    started = _started.pop(task_id, None)
    if state != "SUCCESS":
        return
    elapsed = f" in {time.monotonic() - started:.3f}s" if started is not None else ""
    logger.info(f"{_log_prefix(kwargs)}Task '{task.name}' (id={task_id}) completed{elapsed}")


@task_retry.connect
def log_task_retry(request: Any, reason: Any = None, **_: Any) -> None:
    logger.warning(
        f"{_log_prefix(getattr(request, 'kwargs', None))}Task '{request.task}' "
        f"(id={request.id}) will be retried: {reason}"
    )


@task_failure.connect
def log_task_failure(
    task_id: str,
    exception: BaseException,
    sender: Any = None,
    kwargs: dict[str, Any] | None = None,
    **_: Any,
) -> None:
    name = getattr(sender, "name", "?")
    step = getattr(exception, "step", None)
    step_suffix = f" (step: {step})" if step is not None else ""
    logger.error(
        f"{_log_prefix(kwargs)}Task '{name}' (id={task_id}) failed: {exception}{step_suffix}"
    )

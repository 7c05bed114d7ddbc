#!/usr/bin/env python3
"""agentrelay CLI - management utility for the pipeline engine.

Starts the API server and pipeline workers, initializes the database,
imports, triggers and pauses pipelines, and probes broker health.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from agentrelay.settings import settings
from agentrelay.utils.db_manager import db_manager
from agentrelay.utils.logger import logger


def run_server(host: str | None = None, port: int | None = None) -> None:
    """Run the agentrelay API server."""
    import uvicorn

    host = host or settings.host or "127.0.0.1"
    port = port or settings.port or 8000

    logger.info(f"Starting agentrelay server at http://{host}:{port}")

    uvicorn.run(
        "agentrelay.api.app:app",
        host=host,
        port=port,
        reload=settings.debug,
        log_level="info" if settings.debug else "warning",
    )


async def init_database() -> None:
    """Create all database tables."""
    logger.info("Initializing database...")
    await db_manager.create_db_and_tables_async()
    await db_manager.close()
    logger.info("Database initialized successfully")


async def import_pipelines(path: str) -> int:
    """Upsert pipeline definitions from a JSON file.

    The file holds a list of objects with ``id``, ``name``, ``steps`` and
    optionally ``schedule`` and ``isPaused``.

    Returns:
        Number of imported definitions.
    """
    from agentrelay.repositories import PipelineDefinitionRepository
    from agentrelay.services.pipeline.trigger import parse_steps

    raw: list[dict[str, Any]] = json.loads(Path(path).read_text())

    await db_manager.create_db_and_tables_async()
    try:
        async with db_manager.get_async_session_context() as session:
            repo = PipelineDefinitionRepository(session)
            for item in raw:
                steps = parse_steps(item["id"], item.get("steps", []))
                await repo.upsert(
                    item["id"],
                    item.get("name", item["id"]),
                    [step.to_wire() for step in steps],
                    schedule=item.get("schedule"),
                    is_paused=item.get("isPaused", False),
                )
                logger.info(f"Imported pipeline '{item['id']}' ({len(steps)} steps)")
    finally:
        await db_manager.close()
    return len(raw)


async def trigger_pipeline(pipeline_id: str) -> dict[str, str]:
    """Queue a run of a stored pipeline."""
    from agentrelay.repositories import PipelineDefinitionRepository, PipelineRunRepository
    from agentrelay.services.pipeline import JobQueue, agent_registry, get_celery_app
    from agentrelay.services.pipeline.agents import load_agent_modules
    from agentrelay.services.pipeline.trigger import trigger_pipeline_run

    load_agent_modules(settings.agent_modules)
    try:
        async with db_manager.get_async_session_context() as session:
            return await trigger_pipeline_run(
                pipeline_id,
                definitions=PipelineDefinitionRepository(session),
                runs=PipelineRunRepository(session),
                queue=JobQueue(get_celery_app()),
                registry=agent_registry,
            )
    finally:
        await db_manager.close()


async def load_schedules() -> list[str]:
    """Load every schedulable pipeline into the Celery beat schedule."""
    from agentrelay.repositories import PipelineDefinitionRepository
    from agentrelay.services.pipeline import PipelineScheduler, get_celery_app

    try:
        async with db_manager.get_async_session_context() as session:
            definitions = await PipelineDefinitionRepository(session).list_schedulable()
    finally:
        await db_manager.close()
    return PipelineScheduler(get_celery_app()).load(definitions)


async def set_pipeline_paused(pipeline_id: str, is_paused: bool) -> list[str]:
    """Pause or resume automatic runs of a stored pipeline.

    The stored flag is what a running beat scheduler honours: scheduled
    triggers of a paused pipeline are skipped. The beat entry of this process
    is updated as well.

    Returns:
        Beat schedule keys of this process after the change.
    """
    from agentrelay.repositories import PipelineDefinitionRepository
    from agentrelay.services.pipeline import PipelineScheduler, get_celery_app

    try:
        async with db_manager.get_async_session_context() as session:
            definition = await PipelineDefinitionRepository(session).set_paused(
                pipeline_id, is_paused
            )
    finally:
        await db_manager.close()

    scheduler = PipelineScheduler(get_celery_app())
    if is_paused:
        scheduler.pause_pipeline(pipeline_id)
    elif definition.schedule:
        scheduler.resume_pipeline(definition)
    logger.info(f"Pipeline '{pipeline_id}' {'paused' if is_paused else 'resumed'}")
    return list(scheduler.entries)


def run_pipeline_worker(queues: list[str] | None, concurrency: int | None, beat: bool) -> None:
    """Start a pipeline worker, optionally with the embedded beat scheduler."""
    from agentrelay.services.pipeline import run_worker

    if beat:
        asyncio.run(load_schedules())
    run_worker(queues=queues, concurrency=concurrency, beat=beat)


def health() -> int:
    """Print broker health as JSON.

    Returns:
        Process exit code: 0 when healthy, 1 otherwise.
    """
    from agentrelay.services.pipeline import check_health, get_celery_app

    status = check_health(get_celery_app().connection_for_read())
    print(status.model_dump_json())
    return 0 if status.status == "ok" else 1


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="agentrelay", description="agentrelay CLI - asynchronous agent pipeline engine"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the API server")
    run_parser.add_argument(
        "--host", type=str, default=None, help="Host to bind to (default: 127.0.0.1)"
    )
    run_parser.add_argument(
        "--port", type=int, default=None, help="Port to bind to (default: 8000)"
    )

    # worker command
    worker_parser = subparsers.add_parser("worker", help="Run a pipeline worker")
    worker_parser.add_argument(
        "--queues", nargs="+", default=None, help="Queues to consume (default: pipeline queue)"
    )
    worker_parser.add_argument(
        "--concurrency", type=int, default=None, help="Number of worker processes"
    )
    worker_parser.add_argument(
        "--beat", action="store_true", help="Also run the scheduler for cron pipelines"
    )

    # db command
    db_parser = subparsers.add_parser("db", help="Database management")
    db_subparsers = db_parser.add_subparsers(dest="db_command")
    db_subparsers.add_parser("init", help="Initialize database with tables")

    # pipeline command
    pipeline_parser = subparsers.add_parser("pipeline", help="Pipeline management")
    pipeline_subparsers = pipeline_parser.add_subparsers(dest="pipeline_command")
    import_parser = pipeline_subparsers.add_parser(
        "import", help="Import pipeline definitions from a JSON file"
    )
    import_parser.add_argument("path", help="JSON file with a list of pipeline definitions")
    trigger_parser = pipeline_subparsers.add_parser("trigger", help="Queue a pipeline run")
    trigger_parser.add_argument("pipeline_id", help="Pipeline to run")
    pause_parser = pipeline_subparsers.add_parser("pause", help="Suspend scheduled runs")
    pause_parser.add_argument("pipeline_id", help="Pipeline to pause")
    resume_parser = pipeline_subparsers.add_parser("resume", help="Resume scheduled runs")
    resume_parser.add_argument("pipeline_id", help="Pipeline to resume")

    # health command
    subparsers.add_parser("health", help="Check broker connectivity")

    args = parser.parse_args()

    if args.command == "run":
        run_server(args.host, args.port)
    elif args.command == "worker":
        run_pipeline_worker(args.queues, args.concurrency, args.beat)
    elif args.command == "db":
        if args.db_command == "init":
            asyncio.run(init_database())
        else:
            db_parser.print_help()
    elif args.command == "pipeline":
        if args.pipeline_command == "import":
            count = asyncio.run(import_pipelines(args.path))
            logger.info(f"Imported {count} pipeline definition(s)")
        elif args.pipeline_command == "trigger":
            print(json.dumps(asyncio.run(trigger_pipeline(args.pipeline_id))))
        elif args.pipeline_command in ("pause", "resume"):
            asyncio.run(set_pipeline_paused(args.pipeline_id, args.pipeline_command == "pause"))
        else:
            pipeline_parser.print_help()
    elif args.command == "health":
        sys.exit(health())
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Main API application module for agentrelay.

This module creates and configures the FastAPI application with its routers
and exception handlers.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from agentrelay import __version__
from agentrelay.api.exception_handlers import setup_exception_handlers
from agentrelay.api.routers import job, pipeline
from agentrelay.services.pipeline.agents import load_agent_modules
from agentrelay.settings import settings
from agentrelay.utils.db_manager import db_manager
from agentrelay.utils.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:  # noqa: ARG001
    """
    Application lifespan context manager.

    Creates database tables and registers agents used to validate step configs.
    """
    await db_manager.create_db_and_tables_async()
    logger.info("Database initialized with async support")

    load_agent_modules(settings.agent_modules)

    logger.info("Application startup complete")

    try:
        yield
    finally:
        await db_manager.close()
        logger.info("Application shutdown")


def create_app(root_path: str = "/") -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        root_path: The root path for the application

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="agentrelay",
        description="Asynchronous agent pipeline execution engine",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        root_path=root_path,
    )

    setup_exception_handlers(app)

    app.include_router(pipeline.router, prefix="/api/pipelines", tags=["Pipelines"])
    app.include_router(job.router, prefix="/api/jobs", tags=["Jobs"])

    return app


app = create_app()

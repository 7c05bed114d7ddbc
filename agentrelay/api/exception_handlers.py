"""
Exception handlers for converting domain exceptions to HTTP responses.

This module maps domain exceptions to appropriate HTTP status codes
and response formats for the API layer using FastAPI decorators.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request, status
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from fastapi import FastAPI


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup exception handlers using decorators.

    Args:
        app: FastAPI application instance
    """
    # Import domain exceptions inside function to avoid circular imports
    from agentrelay.exceptions.domain import (
        DatabaseError,
        EntityNotFoundError,
        JobEnqueueError,
        PipelineConfigError,
    )

    @app.exception_handler(EntityNotFoundError)
    async def handle_entity_not_found(_: Request, exc: EntityNotFoundError) -> JSONResponse:
        """Convert EntityNotFoundError to 404 response."""
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": str(exc) if str(exc) else "Resource not found"},
        )

    @app.exception_handler(PipelineConfigError)
    async def handle_pipeline_config_error(_: Request, exc: PipelineConfigError) -> JSONResponse:
        """Convert PipelineConfigError to 422 response, listing step errors."""
        content: dict[str, object] = {"detail": str(exc) if str(exc) else "Invalid pipeline"}
        if exc.errors:
            content["errors"] = exc.errors
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=content)

    @app.exception_handler(JobEnqueueError)
    async def handle_job_enqueue_error(_: Request, exc: JobEnqueueError) -> JSONResponse:
        """Convert JobEnqueueError to 503 response."""
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc) if str(exc) else "Job queue unavailable"},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(_: Request, _exc: DatabaseError) -> JSONResponse:
        """Convert DatabaseError to 500 response."""
        # Don't expose internal database errors to clients
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Database operation failed"},
        )

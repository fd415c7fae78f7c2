"""
FastAPI application exposing page scores over HTTP.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional
from uuid import uuid4

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from wandascore import __version__
from wandascore.container import DependencyContainer
from wandascore.exceptions import GenerationFailedError, PageNotFoundError
from wandascore.jobs.queue import ScoreJobQueue
from wandascore.service import ScoreService

logger = structlog.get_logger(__name__)


class RecomputeRequest(BaseModel):
    page: str = Field(min_length=1, description="Title of the page to rescore.")


def create_app(container: Optional[DependencyContainer] = None) -> FastAPI:
    """Build the API application around a dependency container."""
    container = container or DependencyContainer()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        async with container.lifecycle(watch_config=False):
            app.state.start_time = time.time()
            yield

    app = FastAPI(title="WandaScore API", version=__version__, lifespan=lifespan)
    app.state.container = container

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/api/wandascore")
    async def get_wandascore(
        page: str = Query(..., min_length=1, description="Page title"),
        refresh: bool = Query(False, description="Bypass the cache and recompute"),
        service: ScoreService = Depends(get_service),
    ) -> Dict[str, Any]:
        """Return the (possibly cached) score report for a page."""
        try:
            report = await service.get_score(page, force_refresh=refresh)
        except PageNotFoundError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "missingtitle", "info": str(e)},
            ) from e
        except GenerationFailedError as e:
            logger.error("Score generation failed", page_title=page, error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"code": "wandascore-error-generation-failed", "info": str(e)},
            ) from e
        return {"wandascore": report.to_dict()}

    @app.post("/api/wandascore/jobs", status_code=status.HTTP_202_ACCEPTED)
    async def enqueue_recompute(
        body: RecomputeRequest,
        jobs: ScoreJobQueue = Depends(get_job_queue),
    ) -> Dict[str, Any]:
        """Queue a background recompute of a page's score."""
        job = await jobs.enqueue(body.page)
        return {"queued": job.page_title, "enqueued_at": job.enqueued_at.isoformat()}

    @app.get("/health")
    async def health_check(request: Request) -> Dict[str, Any]:
        """Health check endpoint for Kubernetes/Docker."""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": __version__,
            "container": request.app.state.container.get_health_status(),
        }

    @app.get("/metrics")
    async def get_prometheus_metrics() -> PlainTextResponse:
        """Endpoint for Prometheus to scrape."""
        return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


async def get_service(request: Request) -> ScoreService:
    container: DependencyContainer = request.app.state.container
    return await container.get_service()


async def get_job_queue(request: Request) -> ScoreJobQueue:
    container: DependencyContainer = request.app.state.container
    return await container.get_job_queue()

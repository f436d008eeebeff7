"""
Queue administration API: enqueue, bulk enqueue, ad hoc drains and stats.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from schemaai.app import Services
from schemaai.classification import AUTO_TYPE
from schemaai.queue.models import QueueStats, RunResult
from schemaai.queue.scheduler import clamp_run_size

from ..services import get_services


class EnqueueRequest(BaseModel):
    content_id: int = Field(ge=1, description="CMS content id")
    template_id: str = Field(default=AUTO_TYPE, description="Forced primary type, or Auto")


class EnqueueResponse(BaseModel):
    queued: bool
    message: str


class BulkEnqueueResponse(BaseModel):
    queued: int = Field(description="Number of content items queued")


class RunResponse(BaseModel):
    result: RunResult
    stats: QueueStats


router = APIRouter(prefix="/api/v1/queue", tags=["Queue"])


@router.post("/enqueue", response_model=EnqueueResponse, summary="Queue one content item")
async def enqueue(request: EnqueueRequest, services: Services = Depends(get_services)) -> EnqueueResponse:
    try:
        queued = services.scheduler.enqueue(request.content_id, request.template_id or AUTO_TYPE)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not queued:
        raise HTTPException(status_code=404, detail="Failed to enqueue.")
    return EnqueueResponse(queued=True, message=f"Queued content {request.content_id}.")


@router.post("/enqueue-missing", response_model=BulkEnqueueResponse, summary="Queue content without live schema")
async def enqueue_missing(
    limit: Optional[int] = Query(default=None, ge=1, description="Maximum content items to consider"),
    services: Services = Depends(get_services),
) -> BulkEnqueueResponse:
    return BulkEnqueueResponse(queued=services.scheduler.enqueue_missing(limit))


@router.post("/enqueue-all", response_model=BulkEnqueueResponse, summary="Queue all published content")
async def enqueue_all(
    limit: Optional[int] = Query(default=None, ge=1, description="Maximum content items to consider"),
    services: Services = Depends(get_services),
) -> BulkEnqueueResponse:
    return BulkEnqueueResponse(queued=services.scheduler.enqueue_all(limit))


@router.post(
    "/run",
    response_model=RunResponse,
    summary="Drain the queue now",
    description="Runs up to `max` pending jobs (clamped to 1-5) and returns the updated stats.",
)
async def run_now(
    max: int = Query(default=2, description="Jobs to run"),
    services: Services = Depends(get_services),
) -> RunResponse:
    result = await services.scheduler.run_queue(clamp_run_size(max))
    return RunResponse(result=result, stats=services.scheduler.stats())


@router.get("/stats", response_model=QueueStats, summary="Job counts and last failure")
async def stats(services: Services = Depends(get_services)) -> QueueStats:
    return services.scheduler.stats()

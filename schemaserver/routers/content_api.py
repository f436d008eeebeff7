"""
Content API: CMS save hook, live schema output, derived state, the
visualizer graph and manual schema edits.
"""

import json
import logging
from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from schemaai.app import Services
from schemaai.content import Author, ContentRecord
from schemaai.graph.model import Graph
from schemaai.graph.view import GraphView, graph_view
from schemaai.persistence import SaveOutcome
from schemaai.storage.models import SchemaState

from ..services import get_services

logger = logging.getLogger(__name__)


class ContentUpsert(BaseModel):
    """A post or page as pushed by the CMS."""

    kind: str = "post"
    status: str = "publish"
    title: str = ""
    body: str = ""
    excerpt: str = ""
    permalink: str = Field(description="Canonical URL")
    published_at: datetime
    modified_at: datetime
    author: Author = Field(default_factory=Author)
    featured_image_url: Optional[str] = None
    is_front_page: bool = False
    is_revision: bool = False


class ContentSaved(BaseModel):
    content_id: int
    enqueued: bool = Field(description="Whether the save queued a generation job")


class SchemaEdit(BaseModel):
    """A hand-edited document; an empty `json` clears all generated data."""

    json_text: str = Field(default="", alias="json")
    schema_type: str = ""
    justification: str = ""
    summary: str = ""
    missing_info: list[str] = Field(default_factory=list)


router = APIRouter(prefix="/api/v1/content", tags=["Content"])


@router.put("/{content_id}", response_model=ContentSaved, summary="Upsert a CMS record")
async def upsert_content(
    content_id: int,
    payload: ContentUpsert,
    services: Services = Depends(get_services),
) -> ContentSaved:
    try:
        record = ContentRecord(content_id=content_id, **payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    services.content_store.put(record)
    enqueued = await services.scheduler.maybe_enqueue_on_save(record)
    return ContentSaved(content_id=content_id, enqueued=enqueued)


@router.get("/{content_id}/schema", summary="Live JSON-LD document")
async def get_live_schema(content_id: int, services: Services = Depends(get_services)) -> Any:
    state = services.schema_store.get(content_id)
    if not state.has_live:
        raise HTTPException(status_code=404, detail=f"No live schema for content {content_id}.")
    return json.loads(state.live_json)


@router.get("/{content_id}/state", response_model=SchemaState, summary="Derived schema state")
async def get_state(content_id: int, services: Services = Depends(get_services)) -> SchemaState:
    return services.schema_store.get(content_id)


@router.get("/{content_id}/graph", response_model=GraphView, summary="Graph view for the visualizer")
async def get_graph(
    content_id: int,
    source: Literal["live", "draft"] = Query(default="live", description="Which stored document to render"),
    services: Services = Depends(get_services),
) -> GraphView:
    state = services.schema_store.get(content_id)
    text = state.live_json if source == "live" else state.draft_json
    if not text.strip():
        raise HTTPException(status_code=404, detail=f"No {source} schema for content {content_id}.")
    try:
        graph = Graph.from_json(text)
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=422, detail=f"Stored {source} schema is not a JSON-LD graph: {e}")
    return graph_view(graph)


@router.put("/{content_id}/schema", response_model=SaveOutcome, summary="Save an edited document")
async def put_schema(
    content_id: int,
    edit: SchemaEdit,
    services: Services = Depends(get_services),
) -> SaveOutcome:
    outcome = services.gateway.store(
        content_id,
        edit.json_text,
        edit.schema_type,
        edit.justification,
        edit.summary,
        edit.missing_info,
    )
    logger.info("Manual schema save for content %s: %s", content_id, outcome.status.value)
    return outcome

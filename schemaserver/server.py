"""
FastAPI application for the schema generation service.

Run with ``uvicorn schemaserver.server:app``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from schemaai.logging import setup_logging

from .routers import content_api, queue_api
from .services import get_services, reset_services
from .storage_factory import close_storage
from .worker import start_worker, stop_worker

setup_logging("schemaai")
setup_logging("schemaserver")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Builds services on startup, runs the drain worker, and closes storage on shutdown.
    """
    services = get_services()
    await start_worker(services.scheduler)
    yield
    await stop_worker()
    reset_services()
    close_storage()


app = FastAPI(
    title="Schema AI",
    description="Generates, validates and serves schema.org JSON-LD for CMS content.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(queue_api.router)
app.include_router(content_api.router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint to verify that the server is running.
    """
    return {"status": "ok"}

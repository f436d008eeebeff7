"""
Pytest configuration and shared fixtures for the schema server tests.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from schemaai.app import build_services
from schemaai.clock import FrozenClock
from schemaai.classification import Classification
from schemaai.content import Author, ContentRecord
from schemaai.settings import ClassifierSettings, QueueSettings, SchemaAISettings, SiteSettings
from schemaserver.routers import content_api, queue_api
from schemaserver.services import get_services
from schemaserver.storage.backends.sql import SQLStorage

from tests.conftest import SITE_URL, T0, FakeClassifier, lounge_payload


@pytest.fixture
def sql_storage():
    """In-memory SQLite storage shared across threads (TestClient runs handlers off the test thread)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    storage = SQLStorage(engine)
    yield storage
    engine.dispose()


@pytest.fixture
def clock():
    return FrozenClock(current=T0)


@pytest.fixture
def settings():
    return SchemaAISettings(
        site=SiteSettings(name="Acme Travel", url=SITE_URL, logo_url=f"{SITE_URL}/logo.png"),
        classifier=ClassifierSettings(api_key="test-key", timeout_seconds=1.0),
        queue=QueueSettings(max_attempts=3, lock_ttl_seconds=90, batch_size=2),
        database_url="sqlite://",
    )


@pytest.fixture
def classifier():
    return FakeClassifier(Classification.from_payload(lounge_payload()))


@pytest.fixture
def services(settings, sql_storage, classifier, clock):
    """Services wired to SQL storage and the fake classifier."""
    return build_services(
        settings,
        content_store=sql_storage.content,
        job_store=sql_storage.jobs,
        schema_store=sql_storage.schemas,
        run_lock=sql_storage.run_lock,
        classifier=classifier,
        clock=clock,
    )


@pytest.fixture
def make_record():
    def _make(content_id=1, **overrides):
        fields = {
            "content_id": content_id,
            "title": "Acme Lounge Review",
            "body": "<p>We spent three hours in the Acme Lounge before our flight.</p>",
            "permalink": f"{SITE_URL}/acme-lounge-review/",
            "published_at": T0,
            "modified_at": T0,
            "author": Author(author_id=7, display_name="Jo Writer", url=f"{SITE_URL}/author/jo/"),
            "featured_image_url": f"{SITE_URL}/wp-content/uploads/lounge.jpg",
        }
        fields.update(overrides)
        return ContentRecord(**fields)

    return _make


@pytest.fixture
def app(services):
    """FastAPI app with both routers and the services dependency overridden."""
    _app = FastAPI()
    _app.include_router(queue_api.router)
    _app.include_router(content_api.router)
    _app.dependency_overrides[get_services] = lambda: services
    return _app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client

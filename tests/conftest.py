"""Test fixtures: a fixed site, a frozen clock, content factories and a fake classifier.

The fake classifier stands in for the OpenAI client. It either returns a
prepared `Classification`, raises a prepared exception, or awaits forever
(to exercise the scheduler timeout), and records every request it sees.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

import pytest

from schemaai.app import Services, build_services
from schemaai.classification import Classification, ClassificationRequest
from schemaai.clock import FrozenClock
from schemaai.content import Author, ContentRecord
from schemaai.graph.builder import GraphBuilder
from schemaai.pipeline.classifier import ClassifierInterface
from schemaai.settings import ClassifierSettings, QueueSettings, SchemaAISettings, SiteSettings
from schemaai.validation.validator import SchemaValidator

SITE_URL = "https://example.com"
T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClassifier(ClassifierInterface):
    """Classifier double with a scripted outcome."""

    def __init__(self, outcome: Union[Classification, Exception, None] = None, hang: bool = False):
        self.outcome = outcome or Classification(primary_type="BlogPosting", justification="j", summary="s")
        self.hang = hang
        self.requests: list[ClassificationRequest] = []

    async def classify(self, request: ClassificationRequest) -> Classification:
        self.requests.append(request)
        if self.hang:
            await asyncio.Event().wait()
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    @property
    def calls(self) -> int:
        return len(self.requests)


def lounge_payload(rating: Any = 4) -> dict[str, Any]:
    """AI output for a review of an airport lounge at EXI."""
    return {
        "type": "Review",
        "justification": "The post reviews a lounge.",
        "summary": "A calm lounge with good food.",
        "missing_info": ["opening hours"],
        "details": {
            "reviewed_type": "LocalBusiness",
            "rating": rating,
            "lounge": {
                "name": "Acme Lounge",
                "airport_name": "Example International",
                "iata": "exi",
                "terminal": "Terminal 2",
                "priceRange": "$50, $75, or $120 depending on season",
                "geo": {"lat": 51.47, "lng": -0.4543},
            },
        },
    }


@pytest.fixture
def site() -> SiteSettings:
    return SiteSettings(name="Acme Travel", url=SITE_URL, logo_url=f"{SITE_URL}/logo.png")


@pytest.fixture
def settings(site: SiteSettings) -> SchemaAISettings:
    return SchemaAISettings(
        site=site,
        classifier=ClassifierSettings(api_key="test-key", timeout_seconds=1.0),
        queue=QueueSettings(max_attempts=3, lock_ttl_seconds=90, batch_size=2),
        database_url="sqlite://",
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(current=T0)


@pytest.fixture
def make_record() -> Callable[..., ContentRecord]:
    """Factory for content records with sensible defaults."""

    def _make(content_id: int = 1, **overrides: Any) -> ContentRecord:
        fields: dict[str, Any] = {
            "content_id": content_id,
            "kind": "post",
            "status": "publish",
            "title": "Acme Lounge Review",
            "body": "<p>We spent three hours in the Acme Lounge before our flight.</p>",
            "excerpt": "",
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
def record(make_record) -> ContentRecord:
    return make_record()


@pytest.fixture
def builder(site: SiteSettings) -> GraphBuilder:
    return GraphBuilder(site)


@pytest.fixture
def validator() -> SchemaValidator:
    return SchemaValidator(f"{SITE_URL}/")


@pytest.fixture
def lounge_classification() -> Classification:
    return Classification.from_payload(lounge_payload())


@pytest.fixture
def classifier(lounge_classification: Classification) -> FakeClassifier:
    return FakeClassifier(lounge_classification)


@pytest.fixture
def services(settings: SchemaAISettings, classifier: FakeClassifier, clock: FrozenClock) -> Services:
    return build_services(settings, classifier=classifier, clock=clock)


@pytest.fixture
def make_services(settings: SchemaAISettings, clock: FrozenClock) -> Callable[..., Services]:
    """Services with a custom classifier outcome."""

    def _make(outcome: Optional[Union[Classification, Exception]] = None, **kwargs: Any) -> Services:
        return build_services(settings, classifier=FakeClassifier(outcome, **kwargs), clock=clock)

    return _make

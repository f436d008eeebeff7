"""
Composition root: wires settings, stores, classifier, builder, validator,
gateway and scheduler into one `Services` bundle.
"""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemaai.clock import Clock, SystemClock
from schemaai.content import ContentStoreInterface
from schemaai.graph.builder import GraphBuilder
from schemaai.persistence import PersistenceGateway
from schemaai.pipeline.classifier import ClassifierInterface
from schemaai.pipeline.openai_classifier import OpenAIClassifier
from schemaai.queue.scheduler import Scheduler
from schemaai.settings import SchemaAISettings, load_settings
from schemaai.storage.interfaces import JobStoreInterface, RunLockInterface, SchemaStoreInterface
from schemaai.storage.memory import InMemoryContentStore, InMemoryJobStore, InMemoryRunLock, InMemorySchemaStore
from schemaai.validation.validator import SchemaValidator

logger = logging.getLogger(__name__)


class Services(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: SchemaAISettings
    content_store: ContentStoreInterface
    job_store: JobStoreInterface
    schema_store: SchemaStoreInterface
    run_lock: RunLockInterface
    classifier: ClassifierInterface
    builder: GraphBuilder
    validator: SchemaValidator
    gateway: PersistenceGateway
    scheduler: Scheduler


def build_services(
    settings: Optional[SchemaAISettings] = None,
    content_store: Optional[ContentStoreInterface] = None,
    job_store: Optional[JobStoreInterface] = None,
    schema_store: Optional[SchemaStoreInterface] = None,
    run_lock: Optional[RunLockInterface] = None,
    classifier: Optional[ClassifierInterface] = None,
    clock: Optional[Clock] = None,
) -> Services:
    """
    Build the object graph. Anything not passed in gets its default:
    settings from `load_settings()`, in-memory stores, the OpenAI
    classifier and the system clock.
    """
    settings = settings or load_settings()
    clock = clock or SystemClock()
    content_store = content_store or InMemoryContentStore()
    job_store = job_store or InMemoryJobStore()
    schema_store = schema_store or InMemorySchemaStore()
    run_lock = run_lock or InMemoryRunLock()
    if classifier is None:
        classifier = OpenAIClassifier(
            api_key=settings.classifier.api_key,
            model=settings.classifier.model,
            base_url=settings.classifier.base_url,
            timeout=settings.classifier.timeout_seconds,
        )

    builder = GraphBuilder(settings.site)
    validator = SchemaValidator(builder.home_url)
    gateway = PersistenceGateway(schema_store, validator, clock)
    scheduler = Scheduler(
        settings,
        content_store,
        job_store,
        schema_store,
        run_lock,
        classifier,
        builder,
        gateway,
        clock,
    )
    logger.info("Services ready for site %s", settings.site.url)
    return Services(
        settings=settings,
        content_store=content_store,
        job_store=job_store,
        schema_store=schema_store,
        run_lock=run_lock,
        classifier=classifier,
        builder=builder,
        validator=validator,
        gateway=gateway,
        scheduler=scheduler,
    )

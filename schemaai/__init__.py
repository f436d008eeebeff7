"""
Schema AI - schema.org JSON-LD generation for CMS content.

Content records are classified by an LLM, turned into a deterministic
``@graph`` by the builder, checked by the local validator and published
through the persistence gateway. The queue schedules all of this as durable
jobs.

    from schemaai.app import build_services

    services = build_services()
    services.scheduler.enqueue(42)
    await services.scheduler.run_queue()
"""

from schemaai.classification import AUTO_TYPE, SUPPORTED_TYPES, Classification, ClassificationRequest
from schemaai.content import Author, ContentRecord, ContentStoreInterface, compute_content_hash
from schemaai.errors import (
    ClassifierError,
    ConfigurationError,
    ContentNotFoundError,
    SchemaAIError,
)
from schemaai.graph import Graph, GraphBuilder, Node
from schemaai.settings import SchemaAISettings, load_settings
from schemaai.validation import SchemaValidator, ValidationReport

__version__ = "0.1.0"

__all__ = [
    "AUTO_TYPE",
    "SUPPORTED_TYPES",
    "Classification",
    "ClassificationRequest",
    "Author",
    "ContentRecord",
    "ContentStoreInterface",
    "compute_content_hash",
    "ClassifierError",
    "ConfigurationError",
    "ContentNotFoundError",
    "SchemaAIError",
    "Graph",
    "GraphBuilder",
    "Node",
    "SchemaAISettings",
    "load_settings",
    "SchemaValidator",
    "ValidationReport",
]

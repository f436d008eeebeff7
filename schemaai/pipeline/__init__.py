"""Classifier interface, the OpenAI-compatible client and output post-processing."""

from schemaai.pipeline.classifier import ClassifierInterface
from schemaai.pipeline.openai_classifier import OpenAIClassifier, response_schema
from schemaai.pipeline.post_fixes import apply_post_fixes

__all__ = [
    "ClassifierInterface",
    "OpenAIClassifier",
    "response_schema",
    "apply_post_fixes",
]

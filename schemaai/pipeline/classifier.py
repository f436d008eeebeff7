"""Classifier abstraction.

The scheduler depends only on `ClassifierInterface`; tests substitute a
scripted fake and production wires `OpenAIClassifier`.
"""

from abc import ABC, abstractmethod

from schemaai.classification import Classification, ClassificationRequest


class ClassifierInterface(ABC):
    """Abstract interface for content classifiers."""

    @abstractmethod
    async def classify(self, request: ClassificationRequest) -> Classification:
        """Classify one piece of content.

        Args:
            request: Cleaned title, text, HTML subset, list hints and any
                forced type overrides.

        Returns:
            The classification, post-processed and ready for the graph builder.

        Raises:
            ClassifierError: Any failure; the subclass says which kind.
        """

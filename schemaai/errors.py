"""Exception hierarchy for schema generation.

Everything raised on purpose inside the library derives from `SchemaAIError`
so the scheduler can catch per-job failures at one boundary and record them
on the job row. Classifier failures share the `ClassifierError` base; the
concrete subclass separates configuration problems from provider outages.
"""


class SchemaAIError(Exception):
    """Base class for all schemaai errors."""


class ConfigurationError(SchemaAIError):
    """Settings file is unreadable or holds invalid values."""


class ContentNotFoundError(SchemaAIError):
    def __init__(self, content_id: int):
        super().__init__(f"Content {content_id} not found.")
        self.content_id = content_id


class ClassifierError(SchemaAIError):
    """Raised when the classifier cannot produce a usable classification."""


class MissingCredentialsError(ClassifierError):
    def __init__(self, message: str = "OpenAI API Key is missing."):
        super().__init__(message)


class TransportError(ClassifierError):
    """Network failure or timeout talking to the provider."""


class ProviderHTTPError(ClassifierError):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code


class MalformedResponseError(ClassifierError):
    """The provider answered, but not with the JSON we asked for."""


class ResponseShapeError(ClassifierError):
    """The JSON decoded fine but is missing keys a classification needs."""


class ClassifierTimeoutError(TransportError, TimeoutError):
    """The classifier call exceeded its time budget."""

from schemaai.storage.interfaces import JobStoreInterface, RunLockInterface, SchemaStoreInterface
from schemaai.storage.memory import InMemoryContentStore, InMemoryJobStore, InMemoryRunLock, InMemorySchemaStore
from schemaai.storage.models import ACTIVE_STATUSES, DERIVED_FIELDS, Job, JobStatus, SchemaState

__all__ = [
    "JobStoreInterface",
    "RunLockInterface",
    "SchemaStoreInterface",
    "InMemoryContentStore",
    "InMemoryJobStore",
    "InMemoryRunLock",
    "InMemorySchemaStore",
    "ACTIVE_STATUSES",
    "DERIVED_FIELDS",
    "Job",
    "JobStatus",
    "SchemaState",
]

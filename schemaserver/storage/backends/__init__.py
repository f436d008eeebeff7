from .sql import SQLContentStore, SQLJobStore, SQLRunLock, SQLSchemaStore, SQLStorage

__all__ = ["SQLContentStore", "SQLJobStore", "SQLRunLock", "SQLSchemaStore", "SQLStorage"]

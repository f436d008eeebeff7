"""
Process-wide services for the schema server, backed by SQL storage.
"""

import logging
from typing import Optional

from schemaai.app import Services, build_services
from schemaai.settings import load_settings

from .storage_factory import get_engine, get_storage

logger = logging.getLogger(__name__)

_services: Optional[Services] = None


def get_services() -> Services:
    """
    FastAPI dependency returning the singleton services bundle.
    """
    global _services
    if _services is None:
        settings = load_settings()
        get_engine(settings.database_url)
        storage = get_storage()
        _services = build_services(
            settings,
            content_store=storage.content,
            job_store=storage.jobs,
            schema_store=storage.schemas,
            run_lock=storage.run_lock,
        )
    return _services


def reset_services() -> None:
    global _services
    _services = None

"""Load schemaai settings from TOML (e.g. schemaai.toml).

Config file is looked up in order:
  1. Path in SCHEMAAI_CONFIG env var (if set)
  2. schemaai.toml in the current working directory

If no file is found, built-in defaults are used. A handful of environment
variables override whatever the file says:

  SCHEMAAI_OPENAI_API_KEY  -> classifier.api_key
  SCHEMAAI_MODEL           -> classifier.model
  DATABASE_URL             -> database_url

Example file::

    database_url = "sqlite:///./schemaai.db"

    [site]
    name = "Example Travel"
    url = "https://example.com"
    logo_url = "https://example.com/wp-content/uploads/logo.png"
    language = "en_US"
    emit_website = true

    [classifier]
    model = "gpt-4o-mini"
    timeout_seconds = 60

    [queue]
    max_attempts = 3
    auto_on_save = true
    run_on_save = false
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from schemaai.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./schemaai.db"


class SiteSettings(BaseModel):
    """Site-level identity used by the graph builder's backbone nodes."""

    name: str = Field(default="", description="Publisher / site name")
    url: str = Field(default="https://example.com", description="Site home URL")
    logo_url: Optional[str] = Field(default=None, description="Absolute URL of the site logo")
    language: str = Field(default="en_US", description="Site locale, converted to BCP-47 on output")
    emit_website: bool = Field(default=True, description="Emit a WebSite node on every page, not just the front page")

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class ClassifierSettings(BaseModel):
    api_key: str = Field(default="", description="Provider API key; empty disables generation")
    model: str = Field(default="gpt-4o-mini", description="Chat-completions model name")
    base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI-compatible API root")
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_text_chars: int = Field(default=30000, gt=0)


class QueueSettings(BaseModel):
    max_attempts: int = Field(default=3, ge=1, description="Attempts before a job is terminally failed")
    lock_ttl_seconds: int = Field(default=90, ge=1, description="Run-lock lease lifetime")
    drain_interval_seconds: int = Field(default=120, ge=1, description="Worker tick between drains")
    batch_size: int = Field(default=2, ge=1, le=5, description="Jobs taken per periodic drain")
    stale_running_seconds: int = Field(default=900, ge=1, description="Running jobs older than this are reaped")
    auto_on_save: bool = Field(default=True, description="Enqueue when a published record is saved")
    run_on_save: bool = Field(default=False, description="Drain one job right after a save-triggered enqueue")
    bulk_limit: int = Field(default=500, ge=1, description="Upper bound for enqueue-missing / enqueue-all")


class SchemaAISettings(BaseModel):
    site: SiteSettings = Field(default_factory=SiteSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    database_url: str = Field(default=DEFAULT_DATABASE_URL)


def _default_config_paths() -> list[Path]:
    """Return paths to check for schemaai.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get("SCHEMAAI_CONFIG"):
        paths.append(Path(os.environ["SCHEMAAI_CONFIG"]))
    paths.append(Path.cwd() / "schemaai.toml")
    return paths


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    classifier = dict(data.get("classifier") or {})
    if os.environ.get("SCHEMAAI_OPENAI_API_KEY"):
        classifier["api_key"] = os.environ["SCHEMAAI_OPENAI_API_KEY"]
    if os.environ.get("SCHEMAAI_MODEL"):
        classifier["model"] = os.environ["SCHEMAAI_MODEL"]
    data["classifier"] = classifier
    if os.environ.get("DATABASE_URL"):
        data["database_url"] = os.environ["DATABASE_URL"]
    return data


def load_settings(path: Optional[Path] = None) -> SchemaAISettings:
    """Load settings from TOML plus environment overrides.

    Args:
        path: Explicit config file. When omitted the default lookup order
            applies; a missing file simply means defaults.

    Raises:
        ConfigurationError: the file exists but is not valid TOML, or its
            values fail validation.
    """
    data: dict[str, Any] = {}
    candidates = [path] if path is not None else _default_config_paths()
    for candidate in candidates:
        if candidate.is_file():
            try:
                with open(candidate, "rb") as f:
                    data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                raise ConfigurationError(f"Cannot read {candidate}: {exc}") from exc
            logger.info("Loaded settings from %s", candidate)
            break
    data = _apply_env_overrides(data)
    try:
        return SchemaAISettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc

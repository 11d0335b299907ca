"""Unified configuration schema for outline_notes.

Defines Pydantic models for the YAML config structure with dedicated
sections for the vault, sync behaviour and logging, plus an adapter that
flattens them into fallbacks for ``load_config()``.

Usage:
    from outline_notes.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from .sync.models import ConflictStrategy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class VaultConfig(BaseModel):
    """Where notes live.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    path: str | None = Field(default=None, description="Vault directory")
    snapshot: str | None = Field(
        default=None, description="Store snapshot file"
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Vault synchronisation settings."""

    watch_interval: float = Field(
        default=5.0, gt=0, description="Seconds between change polls"
    )
    export_debounce: float = Field(
        default=0.1, ge=0, description="Seconds before an edit is written"
    )
    indent_size: int = Field(
        default=2, ge=1, le=8, description="Spaces per outline level"
    )
    conflict_strategy: ConflictStrategy = Field(
        default=ConflictStrategy.FILE_WINS,
        description="file-wins, database-wins or merge",
    )
    max_parallel_io: int = Field(
        default=4, ge=1, le=64, description="Max parallel file operations"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    vault: VaultConfig = Field(default_factory=VaultConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()
    return UnifiedConfig(**raw_data)


def to_fallbacks(unified: UnifiedConfig) -> dict:
    """Flatten a ``UnifiedConfig`` into the ``yaml_fallbacks`` dict that
    ``load_config()`` accepts.

    Only sections the file actually set are included, so env vars keep
    precedence over YAML defaults.
    """
    fallbacks: dict = {}
    for key, value in unified.vault.model_dump().items():
        if value is not None:
            fallbacks[key] = value
    for key, value in unified.sync.model_dump(
        mode="json", exclude_unset=True
    ).items():
        fallbacks[key] = value
    return fallbacks

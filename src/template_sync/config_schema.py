"""Unified configuration schema for template_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the remote connection, reconciliation settings, logging and
the declared template collections.  Includes an adapter to the ``Config``
dataclass used by the HTTP client.

Usage:
    from template_sync.config_schema import build_config, to_legacy_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    legacy = to_legacy_config(unified, cli_overrides={"url": "https://..."})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

DEFAULT_TRACKED_FILES = ["template.html", "styles.css", "config.json"]


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RemoteConfig(BaseModel):
    """Template API connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(default=None, description="Template API URL")
    token: str | None = Field(default=None, description="Bearer token")
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Request timeout in seconds (1-300)",
    )

    model_config = {"frozen": True}


class SyncSettings(BaseModel):
    """Reconciliation settings shared by pull, push and bulk sync."""

    templates_root: str = Field(
        default="templates",
        description="Root directory holding <collection>/<artifact>/ bundles",
    )
    tracked_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRACKED_FILES),
        description="Markup, style and metadata file names, in that order",
    )
    hash_file: str = Field(
        default=".pull-hashes.json",
        description="Per-artifact fingerprint map filename",
    )
    backup_dir: str = Field(
        default=".backup",
        description="Per-artifact backup root directory name",
    )
    diff_max_lines: int = Field(
        default=2000,
        ge=1,
        description="Line count above which diffs are omitted",
    )
    max_parallel_syncs: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Maximum artifacts reconciled concurrently (1-32)",
    )
    max_file_size_mb: float = Field(
        default=10,
        gt=0,
        description="Largest tracked file accepted for push",
    )

    model_config = {"frozen": True}

    @field_validator("tracked_files")
    @classmethod
    def _check_tracked_files(cls, value: list[str]) -> list[str]:
        if len(value) != 3:
            raise ValueError(
                "tracked_files must name the markup, style and metadata files"
            )
        if len(set(value)) != len(value):
            raise ValueError("tracked_files must not contain duplicates")
        for name in value:
            if not name or name.startswith("/") or ".." in name.split("/"):
                raise ValueError(
                    f"tracked file '{name}' must be a relative path inside the artifact"
                )
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


class TemplateEntry(BaseModel):
    """One template declared in a collection."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)

    model_config = {"frozen": True}


class CollectionConfig(BaseModel):
    """A named collection (network) of templates."""

    name: str | None = None
    templates: list[TemplateEntry] = Field(default_factory=list)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    collections: dict[str, CollectionConfig] = Field(default_factory=dict)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    A ``None`` section (an empty YAML mapping key) is treated as absent.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    cleaned = {k: v for k, v in raw_data.items() if v is not None}
    return UnifiedConfig(**cleaned)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> Config dataclass
# ---------------------------------------------------------------------------


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > default

    CLI overrides dict keys: url, token, insecure, debug.

    Args:
        unified: The unified config produced by ``build_config()``.
        cli_overrides: Optional dict of CLI argument values.

    Returns:
        ``Config`` dataclass instance (NOT validated; caller should run
        ``validate_config()`` separately if needed).
    """
    # Import here to avoid circular imports
    from .config import Config

    overrides = cli_overrides or {}

    return Config(
        api_url=overrides.get("url") or unified.remote.url or "",
        token=overrides.get("token") or unified.remote.token or "",
        insecure=overrides.get("insecure", False) or unified.remote.insecure,
        debug=overrides.get("debug", False) or unified.remote.debug,
        timeout=unified.remote.timeout,
    )

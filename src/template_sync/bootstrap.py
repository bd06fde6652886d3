"""Session setup for callers that drive reconciliation.

Wires the ambient pieces together in one place:

- Load ``.env`` (so values are visible to env lookups and YAML interpolation)
- Load the hierarchical YAML config, if any
- Configure logging from the ``logging`` section
- Resolve the remote connection: CLI > env vars > .env > YAML > defaults
- Build the ``TemplateClient`` and the per-invocation ``ReconcileContext``
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .config import load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import build_config
from .core.client import TemplateClient
from .logger import setup_logging
from .reconcile.context import ReconcileContext
from .reconcile.engine import Reconciler

logger = logging.getLogger(__name__)


@contextmanager
def reconcile_session(
    config_overrides: dict[str, Any] | None = None,
    *,
    base_dir: Path | None = None,
    configure_logging: bool = True,
) -> Iterator[Reconciler]:
    """
    Yield a ``Reconciler`` ready for pull, push, status and bulk sync.

    Args:
        config_overrides: Optional dict of CLI values (url, token,
            insecure, debug).
        base_dir: Directory ``sync.templates_root`` is relative to
            (default: the current directory).
        configure_logging: Call ``setup_logging()`` from the config's
            ``logging`` section.  Embedders that own logging pass False.

    Raises:
        RuntimeError: If the configuration is missing or invalid.
    """
    overrides = config_overrides or {}
    try:
        load_dotenv()

        sources = []
        config_files = discover_config_files()
        unified = build_config(load_hierarchical_config())
        if config_files:
            sources.append(f"config file: {config_files[0]}")

        if configure_logging:
            setup_logging(
                debug=overrides.get("debug", False),
                log_file=unified.logging.file,
                level=unified.logging.level,
            )

        yaml_fallbacks = {
            k: v for k, v in unified.remote.model_dump().items() if v is not None
        }
        config = load_config(
            url=overrides.get("url"),
            token=overrides.get("token"),
            insecure=overrides.get("insecure", False),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        raise RuntimeError(
            f"Configuration error: {e}. Ensure TEMPLATE_SYNC_API_URL is set."
        ) from e

    if overrides:
        sources.append("CLI arguments")
    sources.append("environment variables")
    logger.info("Configuration loaded from: %s", ", ".join(sources))
    logger.info("Template API: %s", config.api_url)

    context = ReconcileContext.from_config(
        unified, TemplateClient(config), base_dir=base_dir
    )
    logger.debug("Templates root: %s", context.root)
    try:
        yield Reconciler(context)
    finally:
        logger.debug("Reconcile session closed")

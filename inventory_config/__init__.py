"""
inventory_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component may read configuration
    files or environment variables directly.

Architecture position:
    Configuration.  Sits beside ``inventory_kernel`` and below
    ``inventory_services``.  The kernel MUST NEVER import from
    ``inventory_config``; callers pass plain values (database URL, ledger
    policy flags) into kernel constructors.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INVENTORY_CONFIG_TRACE`` log entry with the sources read, the
    checksum of the merged data and the ledger policy in force.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from inventory_config.loader import (
    environment_overrides,
    load_yaml_file,
    merge,
    parse_settings,
)
from inventory_config.schema import InventorySettings

_logger = logging.getLogger("inventory_kernel.config")

_DEFAULT_CONFIG = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> InventorySettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Optional YAML file overlaid on the packaged defaults.
        env: Environment mapping; defaults to ``os.environ``.

    Returns:
        Frozen InventorySettings.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If any value fails validation.
    """
    env = os.environ if env is None else env

    data = load_yaml_file(_DEFAULT_CONFIG)
    sources = [str(_DEFAULT_CONFIG)]
    if config_path is not None:
        data = merge(data, load_yaml_file(Path(config_path)))
        sources.append(str(config_path))
    overrides = environment_overrides(env)
    if overrides:
        data = merge(data, overrides)
        sources.append("environment")

    settings = parse_settings(data, tuple(sources))

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "sources": list(settings.sources),
            "checksum": settings.checksum,
            "database_dialect": settings.database.url.split(":", 1)[0],
            "allow_negative_adjustments": settings.ledger.allow_negative_adjustments,
            "max_concurrency_retries": settings.ledger.max_concurrency_retries,
        },
    )
    return settings


__all__ = ["InventorySettings", "get_active_config"]

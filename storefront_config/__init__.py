"""
storefront_config -- single public entrypoint for storefront configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files directly.

Architecture position:
    Configuration -- sits above ``storefront_kernel``.  The kernel MUST
    NEVER import from ``storefront_config``; the ordering and inventory
    sections are built as kernel policy objects and handed to services.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``storefront_config_loaded`` log entry with the config id and the
    SHA-256 checksum of the source.
"""

from __future__ import annotations

import logging
from pathlib import Path

from storefront_config.loader import load_config_file
from storefront_config.schema import DatabaseConfig, StorefrontConfig

_logger = logging.getLogger("storefront_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> StorefrontConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to
            storefront_config/sets/default.yaml.

    Returns:
        StorefrontConfig -- frozen, validated configuration.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config_file(path)

    _logger.info(
        "storefront_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_path": str(path),
            "checksum": config.checksum,
            "store_id": config.ordering.store_id,
            "decrement_stock_on_checkout": config.ordering.decrement_stock_on_checkout,
        },
    )
    return config


def init_engine_from_config(config: StorefrontConfig):
    """Initialize the kernel engine from the database section."""
    from storefront_kernel.db.engine import init_engine_from_url

    db: DatabaseConfig = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        busy_timeout_seconds=db.busy_timeout_seconds,
    )


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "StorefrontConfig",
    "get_active_config",
    "init_engine_from_config",
]

"""
Configuration Loader (``storefront_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``storefront_config.schema`` dataclasses.  This is internal tooling; the
single public entry point for runtime config is
``storefront_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys are rejected with ``ValueError``; a typo never silently
  falls back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` from the schema dataclasses.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from storefront_config.schema import (
    DEFAULT_DATABASE_URL,
    DatabaseConfig,
    StorefrontConfig,
)
from storefront_kernel.domain.policies import InventoryPolicy, OrderingPolicy

_SECTIONS = ("database", "ordering", "inventory")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _check_keys(section: str, data: dict[str, Any], cls: type) -> None:
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{section}': {', '.join(unknown)}")


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """
    Parse the database section.

    ``url`` falls back to the ``DATABASE_URL`` environment variable and
    then to a local SQLite file.
    """
    _check_keys("database", data, DatabaseConfig)
    values = dict(data)
    if not values.get("url"):
        values["url"] = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
    return DatabaseConfig(**values)


def parse_ordering(data: dict[str, Any]) -> OrderingPolicy:
    _check_keys("ordering", data, OrderingPolicy)
    return OrderingPolicy.from_dict(data)


def parse_inventory(data: dict[str, Any]) -> InventoryPolicy:
    _check_keys("inventory", data, InventoryPolicy)
    return InventoryPolicy.from_dict(data)


def parse_config(data: dict[str, Any], checksum: str) -> StorefrontConfig:
    unknown = sorted(set(data) - set(_SECTIONS) - {"config_id"})
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {', '.join(unknown)}")
    return StorefrontConfig(
        config_id=str(data.get("config_id", "default")),
        database=parse_database(_section(data, "database")),
        ordering=parse_ordering(_section(data, "ordering")),
        inventory=parse_inventory(_section(data, "inventory")),
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_config_file(path: Path) -> StorefrontConfig:
    data = load_yaml_file(path)
    return parse_config(data, compute_checksum(data))

"""
Configuration schema (``storefront_config.schema``).

Responsibility
--------------
Frozen dataclasses describing a storefront configuration set.  The
ordering and inventory sections are the kernel's own policy objects, so
what the YAML says is exactly what the services receive.

Invariants enforced
-------------------
* Every section validates itself in ``__post_init__``; an invalid value
  raises ``ValueError`` at load time, never at first use.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from storefront_kernel.domain.policies import InventoryPolicy, OrderingPolicy

DEFAULT_DATABASE_URL = "sqlite:///storefront.db"


@dataclass(frozen=True)
class DatabaseConfig:
    """Engine settings passed to ``init_engine_from_url``."""

    url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    busy_timeout_seconds: int = 30

    def __post_init__(self):
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be positive")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow cannot be negative")
        if self.pool_timeout <= 0:
            raise ValueError("database.pool_timeout must be positive")
        if self.busy_timeout_seconds <= 0:
            raise ValueError("database.busy_timeout_seconds must be positive")


@dataclass(frozen=True)
class StorefrontConfig:
    """A fully loaded configuration set."""

    config_id: str
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ordering: OrderingPolicy = field(default_factory=OrderingPolicy)
    inventory: InventoryPolicy = field(default_factory=InventoryPolicy)
    checksum: str = ""

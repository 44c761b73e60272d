"""
Tests for storefront_config: YAML loading, validation and the single
get_active_config() entry point.
"""

from decimal import Decimal

import pytest
import yaml

from storefront_config import DEFAULT_CONFIG_PATH, get_active_config, init_engine_from_config
from storefront_config.loader import compute_checksum, load_yaml_file, parse_config
from storefront_config.schema import DEFAULT_DATABASE_URL, DatabaseConfig
from storefront_kernel.db.engine import get_engine, reset_engine
from storefront_kernel.domain.policies import InventoryPolicy, OrderingPolicy


def _write(tmp_path, data, name="store.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultConfig:
    """The shipped default configuration set."""

    def test_default_file_loads(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        config = get_active_config()

        assert config.config_id == "default"
        assert config.database.url == DEFAULT_DATABASE_URL
        assert config.ordering == OrderingPolicy()
        assert config.inventory == InventoryPolicy()
        assert len(config.checksum) == 64

    def test_database_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/storefront")
        config = get_active_config(DEFAULT_CONFIG_PATH)
        assert config.database.url == "postgresql://u:p@db/storefront"

    def test_load_is_logged_with_checksum(self, captured_logs):
        config = get_active_config()

        loaded = [r for r in captured_logs() if r["message"] == "storefront_config_loaded"]
        assert len(loaded) == 1
        assert loaded[0]["checksum"] == config.checksum
        assert loaded[0]["config_id"] == "default"


class TestParsing:
    """YAML sections map onto the kernel policy objects."""

    def test_full_file(self, tmp_path):
        path = _write(tmp_path, {
            "config_id": "eu-store",
            "database": {"url": "sqlite:///eu.db", "pool_size": 5},
            "ordering": {
                "store_id": "eu",
                "order_number_prefix": "EU-",
                "order_number_start": 100,
                "tax_rate": "0.20",
                "decrement_stock_on_checkout": True,
            },
            "inventory": {"low_stock_threshold": 3, "allow_negative_inventory": True},
        })
        config = get_active_config(path)

        assert config.config_id == "eu-store"
        assert config.database.url == "sqlite:///eu.db"
        assert config.database.pool_size == 5
        assert config.ordering.format_order_number(101) == "EU-101"
        assert config.ordering.tax_rate == Decimal("0.20")
        assert config.ordering.decrement_stock_on_checkout is True
        assert config.inventory.low_stock_threshold == 3
        assert config.inventory.allow_negative_inventory is True

    def test_missing_sections_use_defaults(self, tmp_path):
        path = _write(tmp_path, {"config_id": "bare", "database": {"url": "sqlite:///x.db"}})
        config = get_active_config(path)
        assert config.ordering == OrderingPolicy()
        assert config.inventory == InventoryPolicy()

    def test_unknown_key_rejected(self, tmp_path):
        path = _write(tmp_path, {"ordering": {"order_prefix": "X-"}})
        with pytest.raises(ValueError, match="order_prefix"):
            get_active_config(path)

    def test_unknown_section_rejected(self, tmp_path):
        path = _write(tmp_path, {"payments": {}})
        with pytest.raises(ValueError, match="payments"):
            get_active_config(path)

    def test_invalid_value_rejected(self, tmp_path):
        path = _write(tmp_path, {"ordering": {"tax_rate": "1.5"}})
        with pytest.raises(ValueError):
            get_active_config(path)

    def test_non_mapping_top_level(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_invalid_database_settings(self):
        with pytest.raises(ValueError):
            DatabaseConfig(pool_size=0)


class TestChecksum:
    def test_deterministic_and_order_independent(self):
        a = compute_checksum({"x": 1, "y": {"b": 2, "a": 1}})
        b = compute_checksum({"y": {"a": 1, "b": 2}, "x": 1})
        assert a == b

    def test_changes_with_content(self):
        assert compute_checksum({"x": 1}) != compute_checksum({"x": 2})

    def test_parse_config_keeps_checksum(self):
        config = parse_config({"database": {"url": "sqlite:///c.db"}}, "abc")
        assert config.checksum == "abc"


class TestInitEngineFromConfig:
    def test_sqlite_engine(self, tmp_path):
        path = _write(tmp_path, {
            "database": {"url": f"sqlite:///{tmp_path / 'cfg.db'}", "pool_size": 2},
        })
        try:
            engine = init_engine_from_config(get_active_config(path))
            assert engine is get_engine()
            assert engine.dialect.name == "sqlite"
        finally:
            reset_engine()

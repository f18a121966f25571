"""
get_active_config(): packaged defaults, user overrides, environment.
"""

import logging

import pytest
import yaml

from bookkeeping_config import get_active_config
from bookkeeping_config.loader import deep_merge, load_yaml_file, parse_config
from bookkeeping_config.schema import DatabaseConfig, InvoicingConfig, LoggingConfig
from bookkeeping_kernel.exceptions import InvalidCurrencyError


@pytest.fixture
def write_config(tmp_path):
    def _write(data) -> str:
        path = tmp_path / "bookkeeping.yaml"
        path.write_text(yaml.safe_dump(data))
        return str(path)

    return _write


class TestDefaults:

    def test_packaged_defaults(self):
        config = get_active_config(environ={})
        assert config.database.url == "sqlite:///bookkeeping.db"
        assert config.logging.level == "INFO"
        assert config.invoicing == InvoicingConfig.with_defaults()
        assert config.invoicing.primary_language == "es"
        assert config.invoicing.secondary_language == "en"

    def test_engine_kwargs(self):
        kwargs = get_active_config(environ={}).database.engine_kwargs()
        assert kwargs["database_url"] == "sqlite:///bookkeeping.db"
        assert kwargs["sqlite_busy_timeout"] == 30.0


class TestOverrides:

    def test_user_file_is_deep_merged(self, write_config):
        path = write_config({"invoicing": {"number_padding": 3}, "logging": {"level": "debug"}})
        config = get_active_config(path, environ={})

        assert config.invoicing.number_padding == 3
        assert config.invoicing.number_separator == "-"
        assert config.logging.level == "DEBUG"
        assert config.logging.level_number == logging.DEBUG

    def test_environment_overrides_database_url(self, write_config):
        path = write_config({"database": {"url": "sqlite:///from-file.db"}})
        config = get_active_config(
            path, environ={"BOOKKEEPING_DATABASE_URL": "postgresql://u:p@db/books"}
        )
        assert config.database.url == "postgresql://u:p@db/books"

    def test_empty_environment_value_is_ignored(self):
        config = get_active_config(environ={"BOOKKEEPING_DATABASE_URL": ""})
        assert config.database.url == "sqlite:///bookkeeping.db"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml", environ={})


class TestValidation:

    def test_unknown_key(self, write_config):
        with pytest.raises(ValueError, match="unknown keys"):
            get_active_config(write_config({"invoicing": {"number_pading": 3}}), environ={})

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="Unknown configuration sections"):
            parse_config({"payments": {}})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_non_mapping_section(self):
        with pytest.raises(ValueError):
            parse_config({"logging": "DEBUG"})

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"number_padding": 0},
            {"document_root": " "},
            {"primary_language": "en", "secondary_language": "en"},
        ],
    )
    def test_invalid_invoicing(self, kwargs):
        with pytest.raises(ValueError):
            InvoicingConfig(**kwargs)

    def test_invalid_currency(self):
        with pytest.raises(InvalidCurrencyError):
            InvoicingConfig(default_currency="XXX")

    def test_currency_is_normalized(self):
        assert InvoicingConfig(default_currency="usd").default_currency == "USD"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")

    @pytest.mark.parametrize("kwargs", [{"url": ""}, {"pool_size": 0}, {"max_overflow": -1}])
    def test_invalid_database(self, kwargs):
        with pytest.raises(ValueError):
            DatabaseConfig(**kwargs)


def test_deep_merge_keeps_siblings():
    merged = deep_merge({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}})
    assert merged == {"a": {"x": 1, "y": 3}, "b": 1}

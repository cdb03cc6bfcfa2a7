"""get_active_config: packaged defaults, YAML overlay, environment and validation."""

from dataclasses import FrozenInstanceError

import pytest
import yaml

from inventory_config import get_active_config
from inventory_config.loader import merge, parse_bool, parse_settings


class TestDefaults:
    def test_packaged_defaults(self):
        settings = get_active_config(env={})
        assert settings.database.url == "sqlite:///inventory.db"
        assert settings.ledger.allow_negative_adjustments is True
        assert settings.ledger.max_concurrency_retries == 3
        assert settings.events.history_limit == 100
        assert settings.integrations.max_reconnect_attempts == 5
        assert settings.logging.level == "INFO"
        assert len(settings.sources) == 1

    def test_settings_are_frozen(self):
        settings = get_active_config(env={})
        with pytest.raises(FrozenInstanceError):
            settings.ledger.max_concurrency_retries = 9

    def test_checksum_is_stable(self):
        assert get_active_config(env={}).checksum == get_active_config(env={}).checksum


class TestOverlay:
    def test_user_file_overrides_only_what_it_names(self, tmp_path):
        path = tmp_path / "site.yaml"
        path.write_text(yaml.safe_dump({
            "ledger": {"allow_negative_adjustments": False},
            "events": {"history_limit": 20},
        }))

        settings = get_active_config(path, env={})
        assert settings.ledger.allow_negative_adjustments is False
        assert settings.ledger.max_concurrency_retries == 3
        assert settings.events.history_limit == 20
        assert settings.sources[-1] == str(path)
        assert settings.checksum != get_active_config(env={}).checksum

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml", env={})

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ValueError, match="mapping"):
            get_active_config(path, env={})

    def test_merge_is_recursive_and_copies(self):
        base = {"database": {"url": "sqlite://", "echo": False}}
        merged = merge(base, {"database": {"echo": True}})
        assert merged == {"database": {"url": "sqlite://", "echo": True}}
        assert base["database"]["echo"] is False


class TestEnvironment:
    def test_inventory_database_url_wins(self):
        settings = get_active_config(env={
            "INVENTORY_DATABASE_URL": "postgresql://inv@localhost/inv",
            "DATABASE_URL": "postgresql://other@localhost/other",
        })
        assert settings.database.url == "postgresql://inv@localhost/inv"
        assert settings.sources[-1] == "environment"

    def test_database_url_fallback(self):
        settings = get_active_config(env={"DATABASE_URL": "sqlite:///elsewhere.db"})
        assert settings.database.url == "sqlite:///elsewhere.db"

    def test_log_level_and_echo(self):
        settings = get_active_config(env={
            "INVENTORY_LOG_LEVEL": "debug",
            "INVENTORY_DATABASE_ECHO": "yes",
        })
        assert settings.logging.level == "DEBUG"
        assert settings.database.echo is True


class TestValidation:
    def test_every_problem_is_reported(self):
        with pytest.raises(ValueError) as exc_info:
            parse_settings({
                "database": {"url": "not-a-url", "pool_size": 0},
                "ledger": {"max_concurrency_retries": "many"},
                "events": {"history_limit": 0},
                "logging": {"level": "LOUD"},
                "reports": {},
            })
        message = str(exc_info.value)
        for fragment in (
            "database.url",
            "database.pool_size",
            "ledger.max_concurrency_retries",
            "events.history_limit",
            "logging.level",
            "unknown section 'reports'",
        ):
            assert fragment in message

    def test_bad_boolean(self):
        with pytest.raises(ValueError, match="allow_negative_adjustments"):
            parse_settings({"ledger": {"allow_negative_adjustments": "perhaps"}})

    def test_numeric_strings_accepted(self):
        settings = parse_settings({"ledger": {"max_concurrency_retries": "0"}})
        assert settings.ledger.max_concurrency_retries == 0

    @pytest.mark.parametrize("value,expected", [
        (True, True), ("on", True), ("1", True), (" Yes ", True),
        (False, False), ("off", False), ("0", False), ("NO", False),
    ])
    def test_parse_bool(self, value, expected):
        assert parse_bool(value) is expected


def test_config_trace_logged(captured_logs):
    settings = get_active_config(env={})
    traces = [r for r in captured_logs() if r["message"] == "INVENTORY_CONFIG_TRACE"]
    assert len(traces) == 1
    assert traces[0]["checksum"] == settings.checksum
    assert traces[0]["database_dialect"] == "sqlite"
    assert traces[0]["max_concurrency_retries"] == 3

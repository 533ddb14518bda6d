# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Tests for config.yaml loading, env overrides and validation."""

from __future__ import annotations

import pytest

from cocostock.core.config import (
    DEFAULT_BATCH_SIZE,
    load_config,
    reset_config_cache,
    validate_batch_size,
    validate_schedule,
)
from cocostock.core.errors import ConfigError

ENV_VARS = (
    "CBOE_BASE_URL",
    "CBOE_TIMEOUT",
    "CBOE_USER_AGENT",
    "CBOE_TIMEZONE",
    "COCOSTOCK_DB_PATH",
    "COCOSTOCK_DB_TIMEOUT",
    "COCOSTOCK_SCHEDULER_ENABLED",
    "COCOSTOCK_REFILL_SCHEDULE",
    "COCOSTOCK_BATCH_SIZE",
    "COCOSTOCK_MAX_CBOE_AGE_HOURS",
    "COCOSTOCK_ADMIN_API_KEY",
    "COCOSTOCK_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_when_file_missing(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")
        assert config.cboe.base_url == "https://cdn.cboe.com/api/global/delayed_quotes/options/"
        assert config.cboe.timezone == "America/New_York"
        assert config.scheduler.refill_schedule == "never"
        assert config.scheduler.batch_size == DEFAULT_BATCH_SIZE
        assert config.garbage.max_cboe_age_hours == 24
        assert config.api.admin_api_key == ""
        assert config.storage.db_path.endswith("cocostock.db")

    def test_yaml_values(self, tmp_path):
        path = _write(
            tmp_path,
            """
cboe:
  timeout: 12
scheduler:
  enabled: false
  refill_schedule: hourly
  batch_size: 7
  drain_delay_sec: 90
storage:
  db_path: /tmp/x.db
api:
  admin_api_key: abc
""",
        )
        config = load_config(path)
        assert config.cboe.timeout == 12.0
        assert config.scheduler.enabled is False
        assert config.scheduler.refill_schedule == "hourly"
        assert config.scheduler.batch_size == 7
        assert config.scheduler.drain_delay_sec == 90
        assert config.storage.db_path == "/tmp/x.db"
        assert config.api.admin_api_key == "abc"

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "scheduler:\n  batch_size: 7\n  refill_schedule: hourly\n")
        monkeypatch.setenv("COCOSTOCK_BATCH_SIZE", "12")
        monkeypatch.setenv("COCOSTOCK_REFILL_SCHEDULE", "daily")
        monkeypatch.setenv("COCOSTOCK_ADMIN_API_KEY", " k ")
        monkeypatch.setenv("COCOSTOCK_SCHEDULER_ENABLED", "no")
        config = load_config(path)
        assert config.scheduler.batch_size == 12
        assert config.scheduler.refill_schedule == "daily"
        assert config.scheduler.enabled is False
        assert config.api.admin_api_key == "k"

    def test_invalid_yaml_values_raise(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "scheduler:\n  batch_size: 500\n"))
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "scheduler:\n  refill_schedule: weekly\n"))

    def test_unreadable_yaml_falls_back(self, tmp_path):
        config = load_config(_write(tmp_path, "scheduler: [unclosed\n"))
        assert config.scheduler.refill_schedule == "never"

    def test_cache(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COCOSTOCK_DB_PATH", str(tmp_path / "a.db"))
        first = load_config()
        monkeypatch.setenv("COCOSTOCK_DB_PATH", str(tmp_path / "b.db"))
        assert load_config() is first
        reset_config_cache()
        assert load_config().storage.db_path == str(tmp_path / "b.db")


class TestValidators:
    @pytest.mark.parametrize("value", ["never", "every_15_minutes", "every_30_minutes", "hourly", "twicedaily", "DAILY"])
    def test_schedules(self, value):
        assert validate_schedule(value) == value.lower()

    def test_bad_schedule(self):
        with pytest.raises(ConfigError):
            validate_schedule("")

    @pytest.mark.parametrize("value,expected", [(1, 1), ("50", 50), (" 5 ", 5)])
    def test_batch_sizes(self, value, expected):
        assert validate_batch_size(value) == expected

    @pytest.mark.parametrize("value", [0, 51, "x", None])
    def test_bad_batch_sizes(self, value):
        with pytest.raises(ConfigError):
            validate_batch_size(value)

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Centralized configuration loader for Coco Stock Options.

Loads config.yaml from the repository root and provides typed access to settings.
Falls back to sensible defaults if config.yaml is missing or incomplete.
Environment variables override config.yaml values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import yaml

from cocostock.core.errors import ConfigError

logger = logging.getLogger(__name__)

_CONFIG_CACHE: Optional["CocoStockConfig"] = None

# Refill interval enum (persisted as cocostock_cron_schedule)
REFILL_SCHEDULES = ("never", "every_15_minutes", "every_30_minutes", "hourly", "twicedaily", "daily")

BATCH_SIZE_MIN = 1
BATCH_SIZE_MAX = 50
DEFAULT_BATCH_SIZE = 5


def _repo_root() -> Path:
    """Return the repository root."""
    # cocostock/core/config.py -> repo root
    return Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class CboeConfig:
    """CBOE delayed quotes API."""
    base_url: str
    timeout: float
    user_agent: str
    timezone: str  # naive CBOE timestamps are interpreted in this zone


@dataclass(frozen=True)
class StorageConfig:
    """SQLite key/value store."""
    db_path: str
    timeout: float


@dataclass(frozen=True)
class SchedulerConfig:
    """Refill / drain / cleanup triggers."""
    enabled: bool
    refill_schedule: str
    batch_size: int
    drain_delay_sec: int
    refill_drain_delay_sec: int
    cleanup_recurrence: str
    poll_interval_sec: float
    processing_lock_timeout_sec: int


@dataclass(frozen=True)
class GarbageConfig:
    """Expiry cleanup thresholds."""
    max_cboe_age_hours: int


@dataclass(frozen=True)
class ApiConfig:
    """HTTP surface."""
    admin_api_key: str


@dataclass(frozen=True)
class CocoStockConfig:
    """Root configuration object."""
    cboe: CboeConfig
    storage: StorageConfig
    scheduler: SchedulerConfig
    garbage: GarbageConfig
    api: ApiConfig
    debug: bool


def validate_schedule(schedule: str) -> str:
    """Return the normalized refill schedule or raise ConfigError."""
    value = (schedule or "").strip().lower()
    if value not in REFILL_SCHEDULES:
        raise ConfigError(f"Invalid refill schedule {schedule!r}; expected one of {', '.join(REFILL_SCHEDULES)}")
    return value


def validate_batch_size(batch_size: Union[int, str]) -> int:
    """Return batch size as int in [1, 50] or raise ConfigError."""
    try:
        value = int(batch_size)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid batch size {batch_size!r}; expected an integer") from None
    if value < BATCH_SIZE_MIN or value > BATCH_SIZE_MAX:
        raise ConfigError(f"Batch size must be between {BATCH_SIZE_MIN} and {BATCH_SIZE_MAX} (got {value})")
    return value


def _load_yaml_config(path: Optional[Path] = None) -> dict:
    """Load config.yaml (repo root unless path given). Returns empty dict if not found."""
    config_path = path or (_repo_root() / "config.yaml")
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("[CONFIG] Failed to read %s: %s", config_path, e)
        return {}


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name, "").lower().strip()
    if v in ("true", "1", "yes"):
        return True
    if v in ("false", "0", "no"):
        return False
    return default


def load_config(path: Optional[Union[str, Path]] = None, *, reload: bool = False) -> CocoStockConfig:
    """Load and return the Coco Stock Options configuration.

    Priority order (highest to lowest):
    1. Environment variables (CBOE_BASE_URL, CBOE_TIMEOUT, COCOSTOCK_DB_PATH, etc.)
    2. config.yaml values
    3. Built-in defaults

    Parameters
    ----------
    path : str or Path, optional
        Explicit YAML file. Defaults to config.yaml at the repository root.
    reload : bool
        If True, force reload from disk. Otherwise use cached config.

    Returns
    -------
    CocoStockConfig
        The loaded configuration.

    Raises
    ------
    ConfigError
        If the refill schedule or batch size is out of range.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE is not None and not reload and path is None:
        return _CONFIG_CACHE

    raw = _load_yaml_config(Path(path) if path is not None else None)

    # CBOE
    cboe_raw = raw.get("cboe", {}) or {}
    cboe_config = CboeConfig(
        base_url=os.getenv(
            "CBOE_BASE_URL",
            cboe_raw.get("base_url", "https://cdn.cboe.com/api/global/delayed_quotes/options/"),
        ),
        timeout=float(os.getenv("CBOE_TIMEOUT", str(cboe_raw.get("timeout", 30.0)))),
        user_agent=os.getenv("CBOE_USER_AGENT", cboe_raw.get("user_agent", "CocoStockOptions/1.0.0")),
        timezone=os.getenv("CBOE_TIMEZONE", cboe_raw.get("timezone", "America/New_York")),
    )

    # Storage
    storage_raw = raw.get("storage", {}) or {}
    db_path = os.getenv("COCOSTOCK_DB_PATH", storage_raw.get("db_path", ""))
    if not db_path:
        db_path = str(_repo_root() / "artifacts" / "cocostock.db")
    storage_config = StorageConfig(
        db_path=db_path,
        timeout=float(os.getenv("COCOSTOCK_DB_TIMEOUT", str(storage_raw.get("timeout", 10.0)))),
    )

    # Scheduler
    sched_raw = raw.get("scheduler", {}) or {}
    scheduler_config = SchedulerConfig(
        enabled=_env_bool("COCOSTOCK_SCHEDULER_ENABLED", bool(sched_raw.get("enabled", True))),
        refill_schedule=validate_schedule(
            os.getenv("COCOSTOCK_REFILL_SCHEDULE", sched_raw.get("refill_schedule", "never"))
        ),
        batch_size=validate_batch_size(
            os.getenv("COCOSTOCK_BATCH_SIZE", sched_raw.get("batch_size", DEFAULT_BATCH_SIZE))
        ),
        drain_delay_sec=int(sched_raw.get("drain_delay_sec", 60)),
        refill_drain_delay_sec=int(sched_raw.get("refill_drain_delay_sec", 30)),
        cleanup_recurrence=sched_raw.get("cleanup_recurrence", "daily"),
        poll_interval_sec=float(sched_raw.get("poll_interval_sec", 5.0)),
        processing_lock_timeout_sec=int(sched_raw.get("processing_lock_timeout_sec", 900)),
    )

    # Garbage collection
    gc_raw = raw.get("garbage", {}) or {}
    garbage_config = GarbageConfig(
        max_cboe_age_hours=int(os.getenv("COCOSTOCK_MAX_CBOE_AGE_HOURS", str(gc_raw.get("max_cboe_age_hours", 24)))),
    )

    # API
    api_raw = raw.get("api", {}) or {}
    api_config = ApiConfig(
        admin_api_key=(os.getenv("COCOSTOCK_ADMIN_API_KEY") or api_raw.get("admin_api_key") or "").strip(),
    )

    config = CocoStockConfig(
        cboe=cboe_config,
        storage=storage_config,
        scheduler=scheduler_config,
        garbage=garbage_config,
        api=api_config,
        debug=_env_bool("COCOSTOCK_DEBUG", bool(raw.get("debug", False))),
    )
    if path is None:
        _CONFIG_CACHE = config
    return config


def reset_config_cache() -> None:
    """Drop the cached config (for tests)."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = None


__all__ = [
    "REFILL_SCHEDULES",
    "BATCH_SIZE_MIN",
    "BATCH_SIZE_MAX",
    "DEFAULT_BATCH_SIZE",
    "CboeConfig",
    "StorageConfig",
    "SchedulerConfig",
    "GarbageConfig",
    "ApiConfig",
    "CocoStockConfig",
    "validate_schedule",
    "validate_batch_size",
    "load_config",
    "reset_config_cache",
]

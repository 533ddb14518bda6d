# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Persisted runtime settings: refill schedule and drain batch size.

Config file values are only the defaults written on first start; after that the
operator changes these through the admin surface and they survive restarts.
"""

from __future__ import annotations

import logging

from cocostock.core.config import DEFAULT_BATCH_SIZE, validate_batch_size, validate_schedule
from cocostock.core.errors import ConfigError
from cocostock.storage.database import MetaStore

logger = logging.getLogger(__name__)

SCHEDULE_OPTION = "cocostock_cron_schedule"
BATCH_SIZE_OPTION = "cocostock_batch_size"


class RuntimeSettings:
    def __init__(self, store: MetaStore, default_schedule: str = "never", default_batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._store = store
        self._default_schedule = validate_schedule(default_schedule)
        self._default_batch_size = validate_batch_size(default_batch_size)

    def ensure_defaults(self) -> None:
        """Write defaults for settings that were never set (existing values are kept)."""
        if self._store.add_option(SCHEDULE_OPTION, self._default_schedule):
            logger.info("[SETTINGS] %s=%s (default)", SCHEDULE_OPTION, self._default_schedule)
        if self._store.add_option(BATCH_SIZE_OPTION, self._default_batch_size):
            logger.info("[SETTINGS] %s=%s (default)", BATCH_SIZE_OPTION, self._default_batch_size)

    def get_schedule(self) -> str:
        value = self._store.get_option(SCHEDULE_OPTION, self._default_schedule)
        try:
            return validate_schedule(value)
        except ConfigError:
            logger.warning("[SETTINGS] stored %s=%r is invalid; using %s", SCHEDULE_OPTION, value, self._default_schedule)
            return self._default_schedule

    def set_schedule(self, schedule: str) -> str:
        value = validate_schedule(schedule)
        self._store.update_option(SCHEDULE_OPTION, value)
        return value

    def get_batch_size(self) -> int:
        value = self._store.get_option(BATCH_SIZE_OPTION, self._default_batch_size)
        try:
            return validate_batch_size(value)
        except ConfigError:
            logger.warning("[SETTINGS] stored %s=%r is invalid; using %s", BATCH_SIZE_OPTION, value, self._default_batch_size)
            return self._default_batch_size

    def set_batch_size(self, batch_size) -> int:
        value = validate_batch_size(batch_size)
        self._store.update_option(BATCH_SIZE_OPTION, value)
        return value


__all__ = ["SCHEDULE_OPTION", "BATCH_SIZE_OPTION", "RuntimeSettings"]

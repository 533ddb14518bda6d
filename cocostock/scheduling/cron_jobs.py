# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
The three periodic triggers.

  cocostock_update_buffer        refill: enqueue every registered symbol, then make sure a drain is pending
  cocostock_process_buffer_batch drain: one bounded batch; re-arms itself while the buffer is non-empty
  cocostock_cleanup_old_options  cleanup: garbage-collect all symbols (daily)

The drain chain keeps at most one batch in flight: each drain schedules the next
only after it finishes, and a refill only adds a drain when none is pending.
An operator-facing execution log (last 100 entries) is kept in the options table.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from cocostock.core.config import validate_schedule
from cocostock.core.market_time import Clock, format_local, local_now
from cocostock.scheduling.event_scheduler import RECURRENCES, EventScheduler
from cocostock.storage.database import MetaStore
from cocostock.storage.settings import RuntimeSettings
from cocostock.storage.symbol_registry import SymbolRegistry
from cocostock.sync.buffer import Buffer
from cocostock.sync.garbage_collector import GarbageCollector
from cocostock.sync.models import BatchResult

logger = logging.getLogger(__name__)

HOOK_REFILL = "cocostock_update_buffer"
HOOK_DRAIN = "cocostock_process_buffer_batch"
HOOK_CLEANUP = "cocostock_cleanup_old_options"
HOOK_TEST = "cocostock_test_event"

LAST_RUN_OPTION = "cocostock_last_cron_run"
LOGS_OPTION = "cocostock_cron_logs"
MAX_LOG_ENTRIES = 100

DRAIN_DELAY_SEC = 60
REFILL_DRAIN_DELAY_SEC = 30


class SyncScheduler:
    """Refill / drain / cleanup triggers wired onto an EventScheduler."""

    def __init__(
        self,
        events: EventScheduler,
        buffer: Buffer,
        registry: SymbolRegistry,
        collector: GarbageCollector,
        settings: RuntimeSettings,
        store: MetaStore,
        tz_name: Optional[str] = None,
        drain_delay_sec: int = DRAIN_DELAY_SEC,
        refill_drain_delay_sec: int = REFILL_DRAIN_DELAY_SEC,
        cleanup_recurrence: str = "daily",
    ) -> None:
        if cleanup_recurrence not in RECURRENCES:
            raise ValueError(f"Unknown cleanup recurrence {cleanup_recurrence!r}")
        self._events = events
        self._buffer = buffer
        self._registry = registry
        self._collector = collector
        self._settings = settings
        self._store = store
        self._tz_name = tz_name
        self._drain_delay = drain_delay_sec
        self._refill_drain_delay = refill_drain_delay_sec
        self._cleanup_recurrence = cleanup_recurrence

        events.register(HOOK_REFILL, self.update_buffer)
        events.register(HOOK_DRAIN, self.process_buffer_batch)
        events.register(HOOK_CLEANUP, self.cleanup_old_options)
        events.register(HOOK_TEST, lambda: None)
        buffer.next_drain_lookup = lambda: events.next_scheduled(HOOK_DRAIN)

    @property
    def clock(self) -> Clock:
        return self._events.clock

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def update_buffer(self) -> Dict[str, Any]:
        """Refill: enqueue all registered symbols and ensure a drain is pending."""
        self._store.update_option(LAST_RUN_OPTION, local_now(self.clock, self._tz_name))
        symbols = self._registry.list_tickers()
        added = self._buffer.enqueue_many(symbols) if symbols else 0
        drain_scheduled = False
        if not self._buffer.is_empty():
            drain_scheduled = self.ensure_drain_scheduled(self._refill_drain_delay)
        self.log_cron_execution(f"Buffer updated with {len(symbols)} stocks")
        logger.info("[CRON] refill symbols=%d added=%d drain_scheduled=%s", len(symbols), added, drain_scheduled)
        return {"symbols": len(symbols), "added": added, "drain_scheduled": drain_scheduled}

    def process_buffer_batch(self) -> BatchResult:
        """Drain one batch; re-arm after drain_delay_sec while the buffer still has symbols."""
        batch_size = self._settings.get_batch_size()
        result = self._buffer.dequeue_batch(batch_size)
        if result.skipped:
            self.log_cron_execution("Batch skipped: another batch is processing")
        else:
            self.log_cron_execution(
                f"Processed batch: {result.processed} stocks, {result.successful} successful, {len(result.errors)} errors"
            )
        if not result.buffer_empty:
            self.ensure_drain_scheduled(self._drain_delay)
        else:
            logger.info("[CRON] buffer empty; drain chain ends")
        return result

    def cleanup_old_options(self) -> Dict[str, Any]:
        result = self._collector.clean_all()
        self.log_cron_execution(f"Old options cleanup: {result['deleted']} strikes deleted, {len(result['errors'])} errors")
        return result

    def ensure_drain_scheduled(self, delay_sec: Optional[int] = None) -> bool:
        """Schedule a drain unless one is already pending. True when one was added."""
        if self._events.next_scheduled(HOOK_DRAIN) is not None:
            return False
        self._events.schedule_single_event(HOOK_DRAIN, self._drain_delay if delay_sec is None else delay_sec)
        return True

    # ------------------------------------------------------------------
    # Schedule management
    # ------------------------------------------------------------------

    def schedule_update_buffer(self, schedule: str) -> None:
        """Replace the refill recurrence. 'never' leaves no refill installed."""
        value = validate_schedule(schedule)
        self._events.clear_scheduled_hook(HOOK_REFILL)
        if value != "never":
            self._events.schedule_event(HOOK_REFILL, value)
        logger.info("[CRON] refill schedule=%s", value)

    def schedule_cleanup(self) -> None:
        if self._events.next_scheduled(HOOK_CLEANUP) is None:
            self._events.schedule_event(HOOK_CLEANUP, self._cleanup_recurrence)

    def setup(self) -> None:
        """Install the persisted refill schedule and the cleanup recurrence."""
        self.schedule_update_buffer(self._settings.get_schedule())
        self.schedule_cleanup()

    def unschedule_all(self) -> None:
        for hook in (HOOK_REFILL, HOOK_DRAIN, HOOK_CLEANUP):
            self._events.clear_scheduled_hook(hook)
        logger.info("[CRON] all triggers unscheduled")

    def update_schedule(self, schedule: str) -> str:
        """Persist a new refill interval and reinstall the trigger."""
        value = self._settings.set_schedule(schedule)
        self.schedule_update_buffer(value)
        self.log_cron_execution(f"Cron schedule updated to {value}")
        return value

    def set_batch_size(self, batch_size) -> int:
        """Persist the drain batch size; the next drain picks it up."""
        value = self._settings.set_batch_size(batch_size)
        self.log_cron_execution(f"Batch size updated to {value}")
        return value

    def cancel_next_refill(self) -> bool:
        """Skip the next refill occurrence; the recurrence itself stays installed."""
        cancelled = self._events.skip_next(HOOK_REFILL)
        if cancelled is None:
            return False
        self.log_cron_execution("Next refill cancelled")
        return True

    def cancel_next_drain(self) -> bool:
        """Drop the pending drain. A batch already running is not interrupted."""
        removed = self._events.clear_scheduled_hook(HOOK_DRAIN)
        if removed:
            self.log_cron_execution("Pending drain cancelled")
        return removed > 0

    # ------------------------------------------------------------------
    # Status and logs
    # ------------------------------------------------------------------

    def _fmt(self, ts: Optional[float]) -> Optional[str]:
        if ts is None:
            return None
        return format_local(datetime.fromtimestamp(ts, tz=timezone.utc), self._tz_name)

    def get_cron_status(self) -> Dict[str, Any]:
        return {
            "update_buffer_scheduled": self._fmt(self._events.next_scheduled(HOOK_REFILL)),
            "process_batch_scheduled": self._fmt(self._events.next_scheduled(HOOK_DRAIN)),
            "cleanup_scheduled": self._fmt(self._events.next_scheduled(HOOK_CLEANUP)),
            "last_run": self._store.get_option(LAST_RUN_OPTION, "Never"),
            "current_schedule": self._settings.get_schedule(),
            "batch_size": self._settings.get_batch_size(),
            "scheduler": self._events.status(),
        }

    def log_cron_execution(self, message: str) -> None:
        entry = {"timestamp": local_now(self.clock, self._tz_name), "message": message}

        def _append(current: Any) -> List[Dict[str, Any]]:
            logs = list(current) if isinstance(current, list) else []
            logs.append(entry)
            return logs[-MAX_LOG_ENTRIES:]

        self._store.mutate_option(LOGS_OPTION, _append)
        logger.info("[CRON] %s", message)

    def get_recent_logs(self, limit: int = 10) -> List[Dict[str, Any]]:
        logs = self._store.get_option(LOGS_OPTION, [])
        if not isinstance(logs, list) or limit <= 0:
            return []
        return logs[-limit:]

    def clear_logs(self) -> None:
        self._store.delete_option(LOGS_OPTION)

    def test_cron_functionality(self) -> Dict[str, Any]:
        """Check the scheduler can accept events and that a refill interval is configured."""
        tests: Dict[str, bool] = {}
        tests["cron_enabled"] = self._events.is_running()
        self._events.schedule_single_event(HOOK_TEST, 60)
        tests["can_schedule"] = self._events.next_scheduled(HOOK_TEST) is not None
        self._events.clear_scheduled_hook(HOOK_TEST)
        tests["has_schedule"] = self._settings.get_schedule() != "never"
        success = tests["can_schedule"]
        return {
            "success": success,
            "message": "Cron functionality is working properly" if success else "Cron functionality has issues",
            "tests": tests,
        }


__all__ = [
    "HOOK_REFILL",
    "HOOK_DRAIN",
    "HOOK_CLEANUP",
    "LAST_RUN_OPTION",
    "LOGS_OPTION",
    "MAX_LOG_ENTRIES",
    "SyncScheduler",
]

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
Composition root: builds the component graph once and exposes the admin operations.

  MetaStore -> SymbolRegistry, OptionStore, RuntimeSettings
  CboeClient + OptionRecordParser -> SyncCoordinator -> Buffer
  GarbageCollector
  EventScheduler -> SyncScheduler (refill / drain / cleanup)

No component looks anything up globally; everything is passed in here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from cocostock import __version__
from cocostock.cboe.cboe_client import CboeClient, normalize_symbol
from cocostock.cboe.option_parser import OptionRecordParser
from cocostock.core.config import CocoStockConfig, load_config
from cocostock.core.errors import DuplicateSymbolError, NotRegisteredError, SymbolNotFoundUpstreamError
from cocostock.core.market_time import Clock, SystemClock
from cocostock.scheduling.cron_jobs import SyncScheduler
from cocostock.scheduling.event_scheduler import EventScheduler
from cocostock.storage.database import MetaStore
from cocostock.storage.option_store import OptionStore
from cocostock.storage.settings import RuntimeSettings
from cocostock.storage.symbol_registry import SymbolRegistry
from cocostock.sync.buffer import Buffer
from cocostock.sync.garbage_collector import GarbageCollector
from cocostock.sync.models import BatchResult, SyncResult
from cocostock.sync.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class StockOptionsService:
    """Owns every component; the HTTP layer, scripts and tests talk to this object."""

    def __init__(
        self,
        config: CocoStockConfig,
        clock: Optional[Clock] = None,
        client: Optional[CboeClient] = None,
    ) -> None:
        self.config = config
        self.clock = clock or SystemClock()
        tz_name = config.cboe.timezone

        self.store = MetaStore(config.storage.db_path, timeout_sec=config.storage.timeout)
        self.store.init_schema()
        self.settings = RuntimeSettings(
            self.store,
            default_schedule=config.scheduler.refill_schedule,
            default_batch_size=config.scheduler.batch_size,
        )
        self.settings.ensure_defaults()

        self.registry = SymbolRegistry(self.store, clock=self.clock, tz_name=tz_name)
        self.options = OptionStore(self.store)
        self.client = client or CboeClient(
            base_url=config.cboe.base_url,
            timeout_sec=config.cboe.timeout,
            user_agent=config.cboe.user_agent,
            clock=self.clock,
            tz_name=tz_name,
        )
        self.parser = OptionRecordParser(clock=self.clock, tz_name=tz_name)
        self.coordinator = SyncCoordinator(
            self.registry, self.client, self.parser, self.options, clock=self.clock, tz_name=tz_name
        )
        self.buffer = Buffer(
            self.store,
            self.coordinator,
            self.registry,
            self.options,
            self.settings,
            clock=self.clock,
            tz_name=tz_name,
            lock_timeout_sec=config.scheduler.processing_lock_timeout_sec,
        )
        self.collector = GarbageCollector(
            self.registry,
            self.options,
            clock=self.clock,
            tz_name=tz_name,
            max_cboe_age_hours=config.garbage.max_cboe_age_hours,
        )
        self.events = EventScheduler(clock=self.clock, poll_interval_sec=config.scheduler.poll_interval_sec)
        self.scheduler = SyncScheduler(
            self.events,
            self.buffer,
            self.registry,
            self.collector,
            self.settings,
            self.store,
            tz_name=tz_name,
            drain_delay_sec=config.scheduler.drain_delay_sec,
            refill_drain_delay_sec=config.scheduler.refill_drain_delay_sec,
            cleanup_recurrence=config.scheduler.cleanup_recurrence,
        )
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, run_thread: bool = True) -> None:
        """Clear a stale processing flag, install triggers, optionally start the timer thread."""
        if self._started:
            return
        self.buffer.clear_stale_processing_flag()
        self.scheduler.setup()
        if run_thread:
            self.events.start()
        self._started = True
        logger.info(
            "[SERVICE] started db=%s schedule=%s batch_size=%d thread=%s",
            self.store.db_path, self.settings.get_schedule(), self.settings.get_batch_size(), run_thread,
        )

    def stop(self) -> None:
        """Stop the timer thread and drop pending triggers. An in-flight batch finishes."""
        self.events.stop()
        self.scheduler.unschedule_all()
        self._started = False
        logger.info("[SERVICE] stopped")

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def add_symbol(self, ticker: str, verify_upstream: bool = True) -> Dict[str, Any]:
        """
        Register a symbol and queue it for its first sync.

        Raises InvalidSymbolError, DuplicateSymbolError, or SymbolNotFoundUpstreamError
        when CBOE has no chain for it (skipped with verify_upstream=False).
        """
        symbol = normalize_symbol(ticker)
        if self.registry.symbol_exists(symbol):
            raise DuplicateSymbolError(symbol)
        if verify_upstream and not self.client.stock_exists(symbol):
            raise SymbolNotFoundUpstreamError(symbol)
        created = self.registry.create_symbol(symbol)
        enqueued = self.buffer.enqueue(symbol)
        drain_scheduled = self.scheduler.ensure_drain_scheduled(self.config.scheduler.refill_drain_delay_sec)
        logger.info("[SERVICE] added symbol=%s enqueued=%s drain_scheduled=%s", symbol, enqueued, drain_scheduled)
        return {
            "symbol": symbol,
            "created_at": created.created_at,
            "enqueued": enqueued,
            "message": f"Stock {symbol} added successfully and queued for processing",
        }

    def remove_symbol(self, ticker: str) -> bool:
        """Manual removal: the symbol, its option records, and its queue entry."""
        symbol = (ticker or "").strip().upper()
        if not self.registry.symbol_exists(symbol):
            raise NotRegisteredError(symbol)
        self.buffer.remove(symbol)
        return self.registry.delete_symbol(symbol)

    def list_symbols(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.registry.list_symbols()]

    def sync_symbol(self, ticker: str) -> SyncResult:
        return self.coordinator.sync_symbol(ticker)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def trigger_refill(self) -> Dict[str, Any]:
        """Run the refill trigger now."""
        return self.scheduler.update_buffer()

    def trigger_drain_once(self) -> BatchResult:
        """Run the drain trigger now: one batch, re-arming the chain if symbols remain."""
        return self.scheduler.process_buffer_batch()

    def force_drain_now(self) -> BatchResult:
        """Process one batch immediately without touching the drain schedule."""
        return self.buffer.force_process_buffer()

    def cancel_next_refill(self) -> bool:
        return self.scheduler.cancel_next_refill()

    def cancel_next_drain(self) -> bool:
        return self.scheduler.cancel_next_drain()

    def get_buffer_status(self) -> Dict[str, Any]:
        return {
            "info": self.buffer.get_buffer_info(),
            "statistics": self.buffer.get_buffer_statistics(),
            "buffer": self.buffer.get_buffer(),
        }

    def get_schedule_status(self) -> Dict[str, Any]:
        return self.scheduler.get_cron_status()

    def get_info(self) -> Dict[str, Any]:
        return {
            "version": __version__,
            "name": "Coco Stock Options",
            "description": "Options-chain sync, buffer and cache for CBOE delayed quotes",
            "components": {
                "cboe_client": "CBOE Connection",
                "option_parser": "Option Record Parser",
                "option_store": "Option Store",
                "sync_coordinator": "Sync Coordinator",
                "buffer": "Buffer",
                "garbage_collector": "Garbage Collector",
                "scheduler": "Scheduler",
            },
        }

    def get_status(self) -> Dict[str, Any]:
        return {
            "version": __version__,
            "stocks_count": self.registry.count(),
            "cron_status": self.scheduler.get_cron_status(),
            "buffer_info": self.buffer.get_buffer_info(),
            "cleanup_stats": self.collector.statistics(),
        }

    def test_functionality(self) -> Dict[str, Any]:
        """Connectivity check plus scheduler self-test."""
        cboe_test = self.client.test_connectivity()
        cron_test = self.scheduler.test_cron_functionality()
        ok = cboe_test["status"] == "success" and cron_test["success"]
        return {
            "overall_success": ok,
            "tests": {"cboe_connection": cboe_test, "cron_functionality": cron_test},
            "message": "All components are working properly" if ok else "Some components have issues",
        }


def build_service(
    config: Optional[CocoStockConfig] = None,
    clock: Optional[Clock] = None,
    client: Optional[CboeClient] = None,
) -> StockOptionsService:
    """Build the graph from config (loaded from config.yaml / env when omitted)."""
    return StockOptionsService(config or load_config(), clock=clock, client=client)


__all__ = ["StockOptionsService", "build_service"]

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
Processing buffer: persisted, deduplicated FIFO of tickers awaiting sync.

State lives in the options table and is only touched through this class:
  cocostock_processing_buffer      ordered JSON list of tickers (legacy comma string still readable)
  cocostock_processing_status      {"is_processing", "started_at", "run_id"}: drain mutual exclusion
  cocostock_last_buffer_processed  local timestamp of the last finished drain

Every queue change is an atomic read-modify-write (MetaStore.mutate_option).
A running drain refreshes started_at before each symbol, so only a drain that
has stopped making progress for the lock timeout can be taken over.
dequeue_batch removes each ticker right after its own attempt, so a crash
mid-batch leaves only the unattempted remainder queued.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from cocostock.cboe.cboe_client import normalize_symbol
from cocostock.core.market_time import Clock, SystemClock, format_local, local_now
from cocostock.storage.database import MetaStore
from cocostock.storage.option_store import OptionStore
from cocostock.storage.settings import RuntimeSettings
from cocostock.storage.symbol_registry import SymbolRegistry
from cocostock.sync.models import BatchResult, SyncResult
from cocostock.sync.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)

BUFFER_OPTION = "cocostock_processing_buffer"
PROCESSING_STATUS_OPTION = "cocostock_processing_status"
LAST_PROCESSED_OPTION = "cocostock_last_buffer_processed"

# A flag older than this belongs to a drain that died without releasing it.
PROCESSING_LOCK_TIMEOUT_SEC = 900

NEVER = "Never"
NOT_SCHEDULED = "Not scheduled"


def _decode_queue(value: Any) -> List[str]:
    """Stored queue -> ordered unique list. Accepts a JSON list or a legacy comma-joined string."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = value
    else:
        logger.warning("[BUFFER] unexpected stored queue type %s; treating as empty", type(value).__name__)
        return []
    out: List[str] = []
    for item in items:
        ticker = str(item).strip().upper()
        if ticker and ticker not in out:
            out.append(ticker)
    return out


class Buffer:
    """Symbol queue with a process-wide processing flag guarding drains."""

    def __init__(
        self,
        store: MetaStore,
        coordinator: SyncCoordinator,
        registry: SymbolRegistry,
        option_store: OptionStore,
        settings: RuntimeSettings,
        clock: Optional[Clock] = None,
        tz_name: Optional[str] = None,
        lock_timeout_sec: int = PROCESSING_LOCK_TIMEOUT_SEC,
    ) -> None:
        self._store = store
        self._coordinator = coordinator
        self._registry = registry
        self._option_store = option_store
        self._settings = settings
        self._clock = clock or SystemClock()
        self._tz_name = tz_name
        self._lock_timeout_sec = lock_timeout_sec
        # run_ids of drains currently executing in this process.
        self._active_runs: Set[str] = set()
        # Epoch seconds of the next scheduled drain, or None. Installed by the scheduler.
        self.next_drain_lookup: Optional[Callable[[], Optional[float]]] = None

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def get_buffer(self) -> List[str]:
        return _decode_queue(self._store.get_option(BUFFER_OPTION))

    def size(self) -> int:
        return len(self.get_buffer())

    def is_empty(self) -> bool:
        return not self.get_buffer()

    def enqueue(self, symbol: str) -> bool:
        """Append symbol unless already queued. True when it was added."""
        return self.enqueue_many([symbol]) == 1

    def enqueue_many(self, symbols: Iterable[str]) -> int:
        """Append each symbol not already queued, preserving order. Returns how many were added."""
        tickers = [normalize_symbol(s) for s in symbols]
        added: List[str] = []

        def _append(current: Any) -> List[str]:
            added.clear()
            queue = _decode_queue(current)
            for ticker in tickers:
                if ticker not in queue:
                    queue.append(ticker)
                    added.append(ticker)
            return queue

        queue = self._store.mutate_option(BUFFER_OPTION, _append)
        if added:
            logger.info("[BUFFER] enqueued=%d size=%d symbols=%s", len(added), len(queue or []), ",".join(added))
        return len(added)

    def remove(self, symbol: str) -> bool:
        """Remove symbol from the queue. True when it was present."""
        ticker = (symbol or "").strip().upper()
        found: List[bool] = [False]

        def _drop(current: Any) -> List[str]:
            queue = _decode_queue(current)
            found[0] = ticker in queue
            return [s for s in queue if s != ticker]

        self._store.mutate_option(BUFFER_OPTION, _drop)
        return found[0]

    def clear(self) -> None:
        """Empty the queue. A drain already in flight finishes its current batch."""
        self._store.delete_option(BUFFER_OPTION)
        logger.info("[BUFFER] cleared")

    # ------------------------------------------------------------------
    # Processing flag
    # ------------------------------------------------------------------

    def _flag_is_live(self, flag: Any) -> bool:
        if not isinstance(flag, dict) or not flag.get("is_processing"):
            return False
        if flag.get("run_id") in self._active_runs:
            return True
        started_at = flag.get("started_at")
        if not isinstance(started_at, (int, float)):
            return True
        return (self._clock.time() - started_at) <= self._lock_timeout_sec

    def is_processing(self) -> bool:
        return self._flag_is_live(self._store.get_option(PROCESSING_STATUS_OPTION))

    def _acquire(self, run_id: str) -> bool:
        acquired: List[bool] = [False]

        def _take(current: Any) -> Any:
            if self._flag_is_live(current):
                acquired[0] = False
                return current
            if isinstance(current, dict) and current.get("is_processing"):
                logger.warning(
                    "[BUFFER] taking over stale processing flag run_id=%s started_at=%s",
                    current.get("run_id"), current.get("started_at"),
                )
            acquired[0] = True
            return {"is_processing": True, "started_at": self._clock.time(), "run_id": run_id}

        self._store.mutate_option(PROCESSING_STATUS_OPTION, _take)
        return acquired[0]

    def _heartbeat(self, run_id: str) -> bool:
        """Refresh started_at on our own flag. False when another drain has taken it over."""
        owned: List[bool] = [False]

        def _touch(current: Any) -> Any:
            if not isinstance(current, dict) or current.get("run_id") != run_id:
                owned[0] = False
                return current
            owned[0] = True
            return dict(current, started_at=self._clock.time())

        self._store.mutate_option(PROCESSING_STATUS_OPTION, _touch)
        return owned[0]

    def _release(self, run_id: str) -> None:
        def _clear(current: Any) -> Any:
            if isinstance(current, dict) and current.get("run_id") != run_id:
                return current
            return None

        self._store.mutate_option(PROCESSING_STATUS_OPTION, _clear)

    def clear_stale_processing_flag(self) -> bool:
        """Drop a processing flag left behind by a crashed drain. Call on startup."""
        cleared: List[bool] = [False]

        def _check(current: Any) -> Any:
            if current is None or self._flag_is_live(current):
                return current
            cleared[0] = True
            return None

        self._store.mutate_option(PROCESSING_STATUS_OPTION, _check)
        if cleared[0]:
            logger.info("[BUFFER] cleared stale processing flag (older than %ds)", self._lock_timeout_sec)
        return cleared[0]

    # ------------------------------------------------------------------
    # Drain
    # ------------------------------------------------------------------

    def dequeue_batch(self, n: int) -> BatchResult:
        """
        Sync the first n queued symbols in FIFO order.

        Rejected (skipped=True, queue untouched) while another drain holds the
        processing flag. Each symbol leaves the queue right after its attempt,
        whatever the outcome; retry is the next cycle's job.
        """
        if int(n) < 1:
            raise ValueError(f"batch size must be >= 1 (got {n})")
        run_id = uuid.uuid4().hex[:12]
        if not self._acquire(run_id):
            logger.info("[BUFFER] drain rejected: another batch is processing")
            return BatchResult(buffer_empty=self.is_empty(), skipped=True)

        self._active_runs.add(run_id)
        result = BatchResult()
        try:
            to_process = self.get_buffer()[: int(n)]
            if not to_process:
                result.buffer_empty = True
                return result
            logger.info("[BUFFER] drain run_id=%s batch=%s", run_id, ",".join(to_process))
            for ticker in to_process:
                if not self._heartbeat(run_id):
                    logger.warning("[BUFFER] run_id=%s lost the processing flag; stopping before symbol=%s", run_id, ticker)
                    break
                sync_result = self._attempt(ticker)
                result.results.append(sync_result)
                result.processed += 1
                if sync_result.success:
                    result.successful += 1
                else:
                    result.errors.append(f"Failed to sync {ticker}: {sync_result.message}")
                self.remove(ticker)
            self._store.update_option(LAST_PROCESSED_OPTION, local_now(self._clock, self._tz_name))
            result.buffer_empty = self.is_empty()
        finally:
            self._active_runs.discard(run_id)
            self._release(run_id)
        logger.info(
            "[BUFFER] drain done run_id=%s processed=%d successful=%d buffer_empty=%s",
            run_id, result.processed, result.successful, result.buffer_empty,
        )
        return result

    def _attempt(self, ticker: str) -> SyncResult:
        try:
            return self._coordinator.sync_symbol(ticker)
        except Exception as e:
            logger.exception("[BUFFER] sync raised for symbol=%s", ticker)
            return SyncResult(
                symbol=ticker,
                success=False,
                message=f"Exception processing {ticker}: {e}",
                timestamp=local_now(self._clock, self._tz_name),
            )

    def force_process_buffer(self) -> BatchResult:
        """One batch at the persisted batch size."""
        return self.dequeue_batch(self._settings.get_batch_size())

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _next_processing(self) -> str:
        ts = self.next_drain_lookup() if self.next_drain_lookup else None
        if ts is None:
            return NOT_SCHEDULED
        return format_local(datetime.fromtimestamp(ts, tz=timezone.utc), self._tz_name)

    def get_buffer_info(self) -> Dict[str, Any]:
        return {
            "count": self.size(),
            "is_processing": self.is_processing(),
            "last_processed": self._store.get_option(LAST_PROCESSED_OPTION, NEVER),
            "next_processing": self._next_processing(),
        }

    def get_buffer_statistics(self) -> Dict[str, Any]:
        queue = self.get_buffer()
        all_symbols = self._registry.list_tickers()
        return {
            "stocks_in_buffer": len(queue),
            "total_stocks": len(all_symbols),
            "stocks_not_in_buffer": len(set(all_symbols) - set(queue)),
            "is_processing": self.is_processing(),
            "last_processed": self._store.get_option(LAST_PROCESSED_OPTION, NEVER),
        }

    def get_buffer_contents(self) -> List[Dict[str, Any]]:
        contents = []
        for ticker in self.get_buffer():
            exists = self._registry.symbol_exists(ticker)
            contents.append({
                "symbol": ticker,
                "exists_in_db": exists,
                "options_count": len(self._option_store.list_keys(ticker)) if exists else 0,
            })
        return contents


__all__ = [
    "BUFFER_OPTION",
    "PROCESSING_STATUS_OPTION",
    "LAST_PROCESSED_OPTION",
    "PROCESSING_LOCK_TIMEOUT_SEC",
    "Buffer",
]

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
One symbol's full sync: registry check -> fetch -> validate -> parse each entry -> upsert.

Failure policy:
  - not registered / transport / status / decode / invalid structure: abort, failed SyncResult
  - one bad entry (parse error) or one failed record write: counted per strike in errors, sync continues
  - strikes are grouped by record key and each record is written in one transaction
  - success = at least one strike stored
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from cocostock.cboe.cboe_client import CboeClient
from cocostock.cboe.option_parser import OptionRecordParser, ParsedOption
from cocostock.core.errors import InvalidSymbolError, MarketDataError, RecordParseError
from cocostock.core.market_time import Clock, SystemClock, local_now
from cocostock.storage.option_store import OptionStore
from cocostock.storage.symbol_registry import SymbolRegistry
from cocostock.sync.models import SyncResult

logger = logging.getLogger(__name__)

MSG_NOT_REGISTERED = "Stock %s not registered"
MSG_INVALID_STRUCTURE = "Invalid CBOE API response structure"
MSG_SUCCESS = "Successfully processed %d options for %s"
MSG_FAILED = "Failed to process options data"


class SyncCoordinator:
    """Orchestrates syncSymbol; owns OptionRecord creation/update during a sync."""

    def __init__(
        self,
        registry: SymbolRegistry,
        client: CboeClient,
        parser: OptionRecordParser,
        store: OptionStore,
        clock: Optional[Clock] = None,
        tz_name: Optional[str] = None,
    ) -> None:
        self._registry = registry
        self._client = client
        self._parser = parser
        self._store = store
        self._clock = clock or SystemClock()
        self._tz_name = tz_name

    def sync_symbol(self, symbol: str) -> SyncResult:
        """Sync one ticker. Never raises for upstream or per-record failures."""
        ticker = (symbol or "").strip().upper()
        now_local = local_now(self._clock, self._tz_name)
        result = SyncResult(symbol=ticker, timestamp=now_local)
        t0 = time.perf_counter()

        if not self._registry.symbol_exists(ticker):
            result.message = MSG_NOT_REGISTERED % ticker
            logger.info("[SYNC] symbol=%s status=NOT_REGISTERED", ticker)
            return result

        try:
            payload = self._client.fetch(ticker)
        except (MarketDataError, InvalidSymbolError) as e:
            result.message = e.message
            logger.warning("[SYNC] symbol=%s status=FETCH_FAILED code=%s error=%s", ticker, e.code, e)
            return result

        if not self._client.validate(payload):
            result.message = MSG_INVALID_STRUCTURE
            logger.warning("[SYNC] symbol=%s status=INVALID_STRUCTURE", ticker)
            return result

        snapshot = self._client.timestamp(payload)
        processed, errors = self._store_options(ticker, self._client.options(payload), snapshot, now_local)

        result.processed = processed
        result.errors = errors
        result.success = processed > 0
        result.message = MSG_SUCCESS % (processed, ticker) if result.success else MSG_FAILED
        logger.info(
            "[SYNC] symbol=%s status=%s processed=%d errors=%d latency_ms=%d",
            ticker,
            "OK" if result.success else "EMPTY",
            processed,
            len(errors),
            int((time.perf_counter() - t0) * 1000),
        )
        return result

    def _store_options(self, ticker: str, entries: list, snapshot: Optional[str], now_local: str):
        """Parse every entry, then write each record key once with all of its strikes."""
        errors: List[str] = []
        groups: Dict[str, List[ParsedOption]] = {}
        for entry in entries:
            try:
                parsed = self._parser.parse(entry, snapshot, expected_symbol=ticker, last_update=now_local)
            except RecordParseError as e:
                errors.append(f"Failed to parse option data: {e}")
                continue
            groups.setdefault(parsed.record_key, []).append(parsed)

        processed = 0
        for record_key, items in groups.items():
            first = items[0]
            quotes = {p.strike_key: p.quote for p in items}
            if self._store.upsert_strikes(first.symbol, first.date, first.option_type, quotes):
                processed += len(items)
            else:
                errors.extend(f"Failed to save option {record_key} strike {p.strike_key}" for p in items)
        if errors:
            logger.debug("[SYNC] symbol=%s first_error=%s", ticker, errors[0])
        return processed, errors

    def get_sync_status(self, symbol: str) -> Dict[str, Any]:
        """{exists, last_sync, options_count}: last_sync is the newest stored last_update."""
        ticker = (symbol or "").strip().upper()
        if not self._registry.symbol_exists(ticker):
            return {"exists": False, "last_sync": None, "options_count": 0}
        latest = self._store.latest(ticker)
        return {
            "exists": True,
            "last_sync": latest.get("last_update") if latest else None,
            "options_count": len(self._store.list_keys(ticker)),
        }


__all__ = ["SyncCoordinator", "MSG_NOT_REGISTERED", "MSG_INVALID_STRUCTURE", "MSG_SUCCESS", "MSG_FAILED"]

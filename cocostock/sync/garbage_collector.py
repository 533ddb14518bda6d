# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
Garbage collection of stored strikes.

A strike is deleted when EITHER:
  - its expiration date is before today's date in the market timezone, OR
  - its cboe_timestamp is older than the freshness window (default 24h).

An unparseable cboe_timestamp never counts as stale; an unparseable quote date
falls back to the expiration embedded in the record key.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

from cocostock.cboe.option_parser import parse_record_key
from cocostock.core.errors import StorageError
from cocostock.core.market_time import (
    Clock,
    SystemClock,
    local_now,
    market_today,
    parse_date,
    parse_timestamp,
)
from cocostock.storage.option_store import OptionStore
from cocostock.storage.symbol_registry import SymbolRegistry

logger = logging.getLogger(__name__)

MAX_CBOE_AGE_HOURS = 24


class GarbageCollector:
    """Owns deletion of OptionRecords and StrikeQuotes."""

    def __init__(
        self,
        registry: SymbolRegistry,
        store: OptionStore,
        clock: Optional[Clock] = None,
        tz_name: Optional[str] = None,
        max_cboe_age_hours: int = MAX_CBOE_AGE_HOURS,
    ) -> None:
        self._registry = registry
        self._store = store
        self._clock = clock or SystemClock()
        self._tz_name = tz_name
        self._max_age = timedelta(hours=max_cboe_age_hours)

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _expiration(self, record_key: str, quote: Dict[str, Any]) -> Optional[date]:
        expiration = parse_date(quote.get("date"))
        if expiration is None:
            parsed = parse_record_key(record_key)
            if parsed is not None:
                expiration = parse_date(parsed.date)
        return expiration

    def is_expired(self, record_key: str, quote: Dict[str, Any], today: Optional[date] = None) -> bool:
        expiration = self._expiration(record_key, quote)
        if expiration is None:
            return False
        return expiration < (today or market_today(self._clock, self._tz_name))

    def is_stale(self, quote: Dict[str, Any]) -> bool:
        ts = parse_timestamp(quote.get("cboe_timestamp"), self._tz_name)
        if ts is None:
            return False
        return (self._clock.now() - ts) > self._max_age

    def should_delete(self, record_key: str, quote: Dict[str, Any], today: Optional[date] = None) -> bool:
        return self.is_expired(record_key, quote, today) or self.is_stale(quote)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def clean_symbol(self, symbol: str) -> Dict[str, Any]:
        """Delete expired or stale strikes of one symbol. Returns {symbol, deleted, errors}."""
        ticker = (symbol or "").strip().upper()
        today = market_today(self._clock, self._tz_name)
        deleted = 0
        errors: List[str] = []
        for record_key in self._store.list_keys(ticker):
            try:
                deleted += self._store.prune_record(
                    ticker, record_key, lambda sk, q, rk=record_key: self.should_delete(rk, q, today)
                )
            except StorageError as e:
                errors.append(f"Failed to delete option {record_key}: {e}")
        if deleted or errors:
            logger.info("[GC] symbol=%s deleted=%d errors=%d", ticker, deleted, len(errors))
        return {"symbol": ticker, "deleted": deleted, "errors": errors}

    def clean_all(self) -> Dict[str, Any]:
        """clean_symbol over every registered symbol. Returns {success, processed, deleted, errors, timestamp}."""
        processed = 0
        deleted = 0
        errors: List[str] = []
        for ticker in self._registry.list_tickers():
            try:
                result = self.clean_symbol(ticker)
            except StorageError as e:
                errors.append(f"Error cleaning stock {ticker}: {e}")
                continue
            processed += 1
            deleted += result["deleted"]
            errors.extend(result["errors"])
        logger.info("[GC] clean_all processed=%d deleted=%d errors=%d", processed, deleted, len(errors))
        return {
            "success": processed > 0,
            "processed": processed,
            "deleted": deleted,
            "errors": errors,
            "timestamp": local_now(self._clock, self._tz_name),
        }

    def clean_by_date_range(self, start: Union[str, date], end: Union[str, date]) -> Dict[str, Any]:
        """Delete strikes whose expiration lies in [start, end] (inclusive) across all symbols."""
        start_date = parse_date(start)
        end_date = parse_date(end)
        if start_date is None or end_date is None:
            return {"deleted": 0, "errors": ["Invalid date format provided"]}
        if start_date > end_date:
            return {"deleted": 0, "errors": ["Start date is after end date"]}

        def _in_range(record_key: str, quote: Dict[str, Any]) -> bool:
            expiration = self._expiration(record_key, quote)
            return expiration is not None and start_date <= expiration <= end_date

        deleted = 0
        errors: List[str] = []
        for ticker in self._registry.list_tickers():
            for record_key in self._store.list_keys(ticker):
                try:
                    deleted += self._store.prune_record(ticker, record_key, lambda sk, q, rk=record_key: _in_range(rk, q))
                except StorageError as e:
                    errors.append(f"Failed to delete option {record_key} for stock {ticker}: {e}")
        logger.info("[GC] date_range start=%s end=%s deleted=%d", start_date, end_date, deleted)
        return {"deleted": deleted, "errors": errors}

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def statistics(self) -> Dict[str, Any]:
        """Counts only; no side effects. A strike both expired and stale counts in both."""
        tickers = self._registry.list_tickers()
        today = market_today(self._clock, self._tz_name)
        stats = {
            "total_symbols": len(tickers),
            "total_stocks": len(tickers),
            "total_options": 0,
            "total_strikes": 0,
            "expired_options": 0,
            "old_options": 0,
            "stocks_with_old_data": 0,
        }
        for ticker in tickers:
            records = self._store.get_all_records(ticker)
            stats["total_options"] += len(records)
            has_old = False
            for record_key, record in records.items():
                for quote in record.values():
                    if not isinstance(quote, dict):
                        continue
                    stats["total_strikes"] += 1
                    if self.is_expired(record_key, quote, today):
                        stats["expired_options"] += 1
                        has_old = True
                    if self.is_stale(quote):
                        stats["old_options"] += 1
                        has_old = True
            if has_old:
                stats["stocks_with_old_data"] += 1
        return stats


__all__ = ["MAX_CBOE_AGE_HOURS", "GarbageCollector"]

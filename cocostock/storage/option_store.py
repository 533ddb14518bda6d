# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
OptionStore: option records over the key/value backend.

Layout per symbol:
  key   = TICKER + YYMMDD + (C|P)             (record key, e.g. "LMT250801C")
  value = {strike_key: StrikeQuote, ...}      (all strikes of one expiration/type)

Writes are whole-record read-modify-write executed atomically by the backend
(MetaStore.mutate_meta), so concurrent upserts of different strikes under the
same record key do not lose each other. Write failures return False; no retry here.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from cocostock.cboe.option_parser import (
    STRIKE_KEY_RE,
    build_record_key,
    parse_record_key,
)
from cocostock.core.errors import StorageError
from cocostock.storage.database import MetaStore

logger = logging.getLogger(__name__)

OptionRecord = Dict[str, Dict[str, Any]]


def _check_strike_key(strike_key: str) -> str:
    if not STRIKE_KEY_RE.match(strike_key or ""):
        raise ValueError(f"Invalid strike key: {strike_key!r} (expected 8 digits)")
    return strike_key


def _record_key(symbol: str, date: str, option_type: str) -> Tuple[str, str]:
    """(owning ticker, record key). Raises ValueError for malformed parts."""
    key = build_record_key(symbol, date, option_type)
    return (symbol or "").strip().upper(), key


class OptionStore:
    """CRUD over OptionRecords keyed by (symbol, YYMMDD, C|P, [strike key])."""

    def __init__(self, store: MetaStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_strike(self, symbol: str, date: str, option_type: str, strike_key: str, quote: Dict[str, Any]) -> bool:
        """Set record[strike_key] = quote, creating the record if absent. False on storage failure."""
        return self.upsert_strikes(symbol, date, option_type, {strike_key: quote})

    def upsert_strikes(self, symbol: str, date: str, option_type: str, quotes: Dict[str, Dict[str, Any]]) -> bool:
        """Merge several strikes into one record in a single atomic write."""
        ticker, key = _record_key(symbol, date, option_type)
        for sk in quotes:
            _check_strike_key(sk)

        def _merge(current: Optional[OptionRecord]) -> OptionRecord:
            record = dict(current) if isinstance(current, dict) else {}
            for sk, quote in quotes.items():
                record[sk] = dict(quote)
            return record

        try:
            self._store.mutate_meta(ticker, key, _merge)
        except StorageError as e:
            logger.warning("[STORE] upsert failed key=%s strikes=%d: %s", key, len(quotes), e)
            return False
        return True

    def delete_strike(self, symbol: str, date: str, option_type: str, strike_key: str) -> bool:
        """
        Remove one strike. When the record becomes empty the record key itself is deleted.
        False when the strike was absent or storage failed.
        """
        ticker, key = _record_key(symbol, date, option_type)
        _check_strike_key(strike_key)
        found: List[bool] = []

        def _drop(current: Optional[OptionRecord]) -> Optional[OptionRecord]:
            if not isinstance(current, dict) or strike_key not in current:
                found.append(False)
                return current or None
            found.append(True)
            record = {k: v for k, v in current.items() if k != strike_key}
            return record or None

        try:
            self._store.mutate_meta(ticker, key, _drop)
        except StorageError as e:
            logger.warning("[STORE] delete strike failed key=%s strike=%s: %s", key, strike_key, e)
            return False
        return bool(found and found[0])

    def prune_record(
        self,
        symbol: str,
        record_key: str,
        should_delete: Callable[[str, Dict[str, Any]], bool],
    ) -> int:
        """
        Atomically drop every strike of record_key for which should_delete(strike_key, quote)
        is true; deletes the record key when nothing remains. Returns the number removed.

        Raises StorageError (callers that aggregate errors, like cleanup, need the reason).
        """
        ticker = (symbol or "").strip().upper()
        removed: List[int] = [0]

        def _prune(current: Optional[OptionRecord]) -> Optional[OptionRecord]:
            removed[0] = 0
            if not isinstance(current, dict):
                return None
            kept: OptionRecord = {}
            for sk, quote in current.items():
                if should_delete(sk, quote if isinstance(quote, dict) else {}):
                    removed[0] += 1
                else:
                    kept[sk] = quote
            return kept or None

        self._store.mutate_meta(ticker, record_key, _prune)
        return removed[0]

    def delete_all(self, symbol: str) -> int:
        """Delete every option record of symbol. Returns records removed."""
        ticker = (symbol or "").strip().upper()
        removed = 0
        for key in self.list_keys(ticker):
            if self._store.delete_meta(ticker, key):
                removed += 1
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_option_record(self, symbol: str, date: str, option_type: str) -> Optional[OptionRecord]:
        """The whole record (strikes in ascending key order) or None."""
        ticker, key = _record_key(symbol, date, option_type)
        return self.get_record_by_key(ticker, key)

    def get_record_by_key(self, symbol: str, record_key: str) -> Optional[OptionRecord]:
        value = self._store.get_meta((symbol or "").strip().upper(), record_key)
        if not isinstance(value, dict) or not value:
            return None
        return {sk: value[sk] for sk in sorted(value)}

    def get_strike(self, symbol: str, date: str, option_type: str, strike_key: str) -> Optional[Dict[str, Any]]:
        record = self.get_option_record(symbol, date, option_type)
        if record is None:
            return None
        return record.get(strike_key)

    def list_keys(self, symbol: str) -> List[str]:
        """All record keys for symbol (keys whose prefix is the ticker), ascending."""
        ticker = (symbol or "").strip().upper()
        keys = []
        for key in self._store.list_meta_keys(ticker, prefix=ticker):
            parsed = parse_record_key(key)
            if parsed is not None and parsed.symbol == ticker:
                keys.append(key)
        return keys

    def get_all_records(self, symbol: str) -> Dict[str, OptionRecord]:
        """{record_key: record} for symbol in key order."""
        ticker = (symbol or "").strip().upper()
        out: Dict[str, OptionRecord] = {}
        for key, value in self._store.list_meta(ticker, prefix=ticker).items():
            parsed = parse_record_key(key)
            if parsed is None or parsed.symbol != ticker or not isinstance(value, dict) or not value:
                continue
            out[key] = {sk: value[sk] for sk in sorted(value)}
        return out

    def get_records_for_date(self, symbol: str, date: str) -> Dict[str, OptionRecord]:
        """Call and put records of one expiration (YYMMDD)."""
        out: Dict[str, OptionRecord] = {}
        for opt_type in ("C", "P"):
            record = self.get_option_record(symbol, date, opt_type)
            if record is not None:
                out[build_record_key(symbol, date, opt_type)] = record
        return out

    def latest(self, symbol: str) -> Optional[Dict[str, Any]]:
        """
        StrikeQuote with the greatest last_update across every record of symbol.

        Linear scan: O(total strikes stored for the symbol), not O(1).
        last_update is a fixed-width local timestamp so string order is time order.
        """
        best: Optional[Dict[str, Any]] = None
        best_ts = ""
        for record in self.get_all_records(symbol).values():
            for quote in record.values():
                if not isinstance(quote, dict):
                    continue
                ts = str(quote.get("last_update") or "")
                if best is None or ts > best_ts:
                    best, best_ts = quote, ts
        return best

    def count_strikes(self, symbol: str) -> int:
        return sum(len(r) for r in self.get_all_records(symbol).values())


__all__ = ["OptionRecord", "OptionStore"]

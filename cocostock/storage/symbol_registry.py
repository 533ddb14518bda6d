# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Registered symbols (owning entities of option records)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from cocostock.cboe.cboe_client import normalize_symbol
from cocostock.core.errors import DuplicateSymbolError
from cocostock.core.market_time import Clock, SystemClock, local_now
from cocostock.storage.database import MetaStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Symbol:
    symbol: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {"symbol": self.symbol, "created_at": self.created_at}


class SymbolRegistry:
    """Create / look up / list / remove tickers. Tickers are stored uppercase."""

    def __init__(self, store: MetaStore, clock: Optional[Clock] = None, tz_name: Optional[str] = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._tz_name = tz_name

    def create_symbol(self, symbol: str) -> Symbol:
        """Register symbol. Raises InvalidSymbolError or DuplicateSymbolError."""
        ticker = normalize_symbol(symbol)
        created_at = local_now(self._clock, self._tz_name)
        if not self._store.insert_symbol(ticker, created_at):
            raise DuplicateSymbolError(ticker)
        logger.info("[REGISTRY] created symbol=%s", ticker)
        return Symbol(symbol=ticker, created_at=created_at)

    def get_symbol(self, symbol: str) -> Optional[Symbol]:
        row = self._store.get_symbol_row((symbol or "").strip().upper())
        if row is None:
            return None
        return Symbol(symbol=row[0], created_at=row[1])

    def symbol_exists(self, symbol: str) -> bool:
        return self.get_symbol(symbol) is not None

    def list_symbols(self) -> List[Symbol]:
        """All registered symbols, ticker ascending."""
        return [Symbol(symbol=s, created_at=c) for s, c in self._store.list_symbol_rows()]

    def list_tickers(self) -> List[str]:
        return [s.symbol for s in self.list_symbols()]

    def count(self) -> int:
        return len(self._store.list_symbol_rows())

    def delete_symbol(self, symbol: str) -> bool:
        """Manual removal: deletes the symbol and all of its option records."""
        ticker = (symbol or "").strip().upper()
        deleted = self._store.delete_symbol(ticker)
        if deleted:
            logger.info("[REGISTRY] deleted symbol=%s", ticker)
        return deleted


__all__ = ["Symbol", "SymbolRegistry"]

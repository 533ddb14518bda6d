# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""CBOE delayed-quotes payloads for tests."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

SNAPSHOT_TS = "2025-07-01 20:16:40"


_CODE_DATE_RE = re.compile(r"^[A-Z]+(\d{2})(\d{2})(\d{2})[CP]")


def option_entry(code: str, bid: float = 1.0, ask: float = 1.2, **overrides: Any) -> Dict[str, Any]:
    """One vendor option entry shaped like data.options[i]. expiration follows the code's YYMMDD."""
    m = _CODE_DATE_RE.match(code)
    entry: Dict[str, Any] = {
        "option": code,
        "expiration": f"20{m.group(1)}-{m.group(2)}-{m.group(3)}" if m else "2025-08-15",
        "bid": bid,
        "bidSize": 10,
        "ask": ask,
        "askSize": 12,
        "iv": 0.3521,
        "openInterest": 150,
        "volume": 25,
        "delta": 0.45,
        "gamma": 0.02,
        "vega": 0.11,
        "theta": -0.05,
        "rho": 0.01,
        "theo": 1.1,
        "change": 0.05,
        "open": 1.0,
        "high": 1.3,
        "low": 0.9,
        "tick": "up",
        "lastTradePrice": 1.15,
        "lastTradeTime": "2025-07-01T15:59:12",
        "percentChange": 4.5,
        "prevDayClose": 1.1,
    }
    entry.update(overrides)
    return entry


def chain_payload(
    symbol: str,
    entries: Optional[List[Dict[str, Any]]] = None,
    timestamp: Optional[str] = SNAPSHOT_TS,
) -> Dict[str, Any]:
    """Full response body. entries defaults to a small two-expiration chain."""
    if entries is None:
        entries = default_entries(symbol)
    payload: Dict[str, Any] = {"data": {"symbol": symbol, "options": entries}}
    if timestamp is not None:
        payload["timestamp"] = timestamp
    return payload


def default_entries(symbol: str) -> List[Dict[str, Any]]:
    return [
        option_entry(f"{symbol}250815C00450000", bid=12.5, ask=13.1),
        option_entry(f"{symbol}250815C00460000", bid=0.0, ask=0.25),
        option_entry(f"{symbol}250815P00450000", bid=3.2, ask=3.6),
        option_entry(f"{symbol}250919C00460000", bid=8.1, ask=8.7),
    ]


BXMT_ENTRY = option_entry("BXMT250815C00011000", bid=0.42, ask=0.55, expiration="2025-08-15", strike=11, type="C")

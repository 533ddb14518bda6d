# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""CBOE delayed-quotes client: fetch a symbol's full option chain. Pure I/O boundary, no state.

Errors:
  - TransportError: requests failure (connection, timeout)
  - UpstreamStatusError: non-200
  - DecodeError: body is not a JSON object
Business validation (data.options present) is separate: validate().
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, List, Optional

import requests

from cocostock.cboe.endpoints import BASE_DELAYED_OPTIONS, CONNECTIVITY_SYMBOL, url_options
from cocostock.cboe.option_parser import OPTION_CODE_RE
from cocostock.core.errors import (
    DecodeError,
    InvalidSymbolError,
    MarketDataError,
    TransportError,
    UpstreamStatusError,
)
from cocostock.core.market_time import Clock, SystemClock, local_now

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SEC = 30
DEFAULT_USER_AGENT = "CocoStockOptions/1.0.0"

SYMBOL_RE = re.compile(r"^[A-Za-z]+$")


def normalize_symbol(symbol: str) -> str:
    """Uppercase ticker; raise InvalidSymbolError unless letters only."""
    text = (symbol or "").strip()
    if not SYMBOL_RE.match(text):
        raise InvalidSymbolError(symbol or "")
    return text.upper()


class CboeClient:
    """
    MarketDataClient for the CBOE delayed quotes CDN.

    fetch() returns the decoded payload unchanged; validate() and timestamp()
    inspect it without side effects.
    """

    def __init__(
        self,
        base_url: str = BASE_DELAYED_OPTIONS,
        timeout_sec: float = REQUEST_TIMEOUT_SEC,
        user_agent: str = DEFAULT_USER_AGENT,
        clock: Optional[Clock] = None,
        tz_name: Optional[str] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout_sec = timeout_sec
        self.user_agent = user_agent
        self._clock = clock or SystemClock()
        self._tz_name = tz_name

    def fetch(self, symbol: str) -> Dict[str, Any]:
        """
        GET the option chain for symbol.

        Logs [CBOE_CALL] symbol= status= latency_ms= rows=.
        Raises TransportError, UpstreamStatusError or DecodeError.
        """
        ticker = normalize_symbol(symbol)
        url = url_options(ticker, self.base_url)
        t0 = time.perf_counter()
        try:
            r = requests.get(url, headers={"User-Agent": self.user_agent}, timeout=self.timeout_sec)
        except requests.RequestException as e:
            latency_ms = int((time.perf_counter() - t0) * 1000)
            logger.warning("[CBOE_CALL] symbol=%s status=FAIL latency_ms=%s error=%s", ticker, latency_ms, e)
            raise TransportError(f"CBOE request failed: {e}", symbol=ticker, response_snippet=str(e)[:200]) from e

        latency_ms = int((time.perf_counter() - t0) * 1000)
        if r.status_code != 200:
            logger.warning("[CBOE_CALL] symbol=%s status=%s latency_ms=%s rows=0", ticker, r.status_code, latency_ms)
            raise UpstreamStatusError(r.status_code, symbol=ticker, response_snippet=(r.text or "")[:300])

        try:
            raw: Any = r.json()
        except ValueError as e:
            logger.warning("[CBOE_CALL] symbol=%s status=%s latency_ms=%s invalid JSON", ticker, r.status_code, latency_ms)
            raise DecodeError(
                "Failed to parse JSON response from CBOE API",
                symbol=ticker,
                http_status=r.status_code,
                response_snippet=(r.text or "")[:200],
            ) from e
        if not isinstance(raw, dict):
            raise DecodeError(
                f"CBOE response is not a JSON object (got {type(raw).__name__})",
                symbol=ticker,
                http_status=r.status_code,
                response_snippet=str(raw)[:200],
            )

        rows = len(self.options(raw))
        logger.info(
            "[CBOE_CALL] symbol=%s status=%s latency_ms=%s rows=%s timestamp=%s",
            ticker, r.status_code, latency_ms, rows, self.timestamp(raw) or "",
        )
        return raw

    @staticmethod
    def validate(payload: Any) -> bool:
        """True when payload has data.options as a list."""
        if not isinstance(payload, dict):
            return False
        data = payload.get("data")
        return isinstance(data, dict) and isinstance(data.get("options"), list)

    @staticmethod
    def timestamp(payload: Any) -> Optional[str]:
        """Vendor snapshot time (top-level 'timestamp'), or None."""
        if not isinstance(payload, dict):
            return None
        ts = payload.get("timestamp")
        return str(ts) if ts not in (None, "") else None

    @staticmethod
    def options(payload: Any) -> List[Any]:
        """Raw option entries; [] when the payload is not shaped as expected."""
        if not CboeClient.validate(payload):
            return []
        return payload["data"]["options"]

    def expiration_dates(self, payload: Any) -> List[str]:
        """Unique expirations (YYMMDD) in payload order, from the vendor option codes."""
        seen: List[str] = []
        for entry in self.options(payload):
            if not isinstance(entry, dict):
                continue
            m = OPTION_CODE_RE.match(str(entry.get("option") or ""))
            if m and m.group(2) not in seen:
                seen.append(m.group(2))
        return seen

    def stock_exists(self, symbol: str) -> bool:
        """True when CBOE serves a chain for symbol (fetch succeeds and data is a mapping)."""
        try:
            payload = self.fetch(symbol)
        except (MarketDataError, InvalidSymbolError) as e:
            logger.info("[CBOE] symbol=%s not available: %s", (symbol or "").upper(), e)
            return False
        return isinstance(payload.get("data"), dict)

    def test_connectivity(self, symbol: str = CONNECTIVITY_SYMBOL) -> Dict[str, Any]:
        """Fetch a known symbol. Returns {status: success|error, message, timestamp}."""
        results: Dict[str, Any] = {
            "status": "unknown",
            "message": "",
            "timestamp": local_now(self._clock, self._tz_name),
        }
        try:
            self.fetch(symbol)
        except MarketDataError as e:
            results["status"] = "error"
            results["message"] = str(e)
            return results
        results["status"] = "success"
        results["message"] = "CBOE API connection successful"
        return results


__all__ = [
    "REQUEST_TIMEOUT_SEC",
    "SYMBOL_RE",
    "normalize_symbol",
    "CboeClient",
]

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
CBOE option record parsing and storage-key helpers.

Vendor option code (authoritative; denser fields may be missing upstream):
  option = TICKER + YYMMDD + (C|P) + STRIKE digits
  Example: BXMT250815C00011000 -> ticker BXMT, date 250815, type C, strike key 00011000

Storage keys:
  record key = TICKER + YYMMDD + (C|P)            e.g. "BXMT250815C"
  strike key = 8-digit zero-padded (price * 100)  e.g. 110.00 -> "00011000"

format_strike_key() is the ONE canonical price -> strike key formatter; the read
path (query by price) and any write path that starts from a price must use it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

from cocostock.core.errors import RecordParseError
from cocostock.core.market_time import Clock, SystemClock, local_now

logger = logging.getLogger(__name__)

OPTION_CODE_RE = re.compile(r"^([A-Z]+)(\d{6})([CP])(\d+)$")
RECORD_KEY_RE = re.compile(r"^([A-Z]+)(\d{6})([CP])$")
STRIKE_KEY_RE = re.compile(r"^\d{8}$")

STRIKE_KEY_WIDTH = 8
OPTION_TYPES = ("C", "P")

# StrikeQuote field order (also the read API's `field` enum)
STRIKE_QUOTE_FIELDS = (
    "last_update",
    "cboe_timestamp",
    "date",
    "option",
    "bid",
    "bid_size",
    "ask",
    "ask_size",
    "iv",
    "open_interest",
    "volume",
    "delta",
    "gamma",
    "vega",
    "theta",
    "rho",
    "theo",
    "change",
    "open",
    "high",
    "low",
    "tick",
    "last_trade_price",
    "last_trade_time",
    "percent_change",
    "prev_day_close",
)

# quote field -> vendor field
_FLOAT_FIELDS = {
    "bid": "bid",
    "ask": "ask",
    "iv": "iv",
    "delta": "delta",
    "gamma": "gamma",
    "vega": "vega",
    "theta": "theta",
    "rho": "rho",
    "theo": "theo",
    "change": "change",
    "open": "open",
    "high": "high",
    "low": "low",
    "last_trade_price": "lastTradePrice",
    "percent_change": "percentChange",
    "prev_day_close": "prevDayClose",
}
_INT_FIELDS = {
    "bid_size": "bidSize",
    "ask_size": "askSize",
    "open_interest": "openInterest",
    "volume": "volume",
}

TICK_DEFAULT = "no_change"


# ============================================================================
# Key helpers
# ============================================================================


@dataclass(frozen=True)
class RecordKey:
    """Parsed record key: ticker, YYMMDD expiration, C|P."""
    symbol: str
    date: str
    option_type: str

    def __str__(self) -> str:
        return build_record_key(self.symbol, self.date, self.option_type)


def build_record_key(symbol: str, date: str, option_type: str) -> str:
    """
    Build the record key TICKER+YYMMDD+(C|P).

    Raises ValueError when a component is malformed.
    """
    ticker = (symbol or "").strip().upper()
    opt_type = (option_type or "").strip().upper()
    if not re.match(r"^[A-Z]+$", ticker):
        raise ValueError(f"Invalid ticker for record key: {symbol!r}")
    if not re.match(r"^\d{6}$", str(date or "")):
        raise ValueError(f"Invalid YYMMDD date for record key: {date!r}")
    if opt_type not in OPTION_TYPES:
        raise ValueError(f"Invalid option type for record key: {option_type!r}")
    return f"{ticker}{date}{opt_type}"


def parse_record_key(key: str) -> Optional[RecordKey]:
    """Inverse of build_record_key. None when key is not a record key."""
    m = RECORD_KEY_RE.match(key or "")
    if not m:
        return None
    return RecordKey(symbol=m.group(1), date=m.group(2), option_type=m.group(3))


def format_strike_key(price: Union[str, float, int, Decimal]) -> str:
    """
    Canonical strike key: price * 100, truncated to integer, zero-padded to 8 digits.

    Decimal arithmetic keeps truncation exact for prices with <= 2 decimals
    (float 0.29 * 100 would truncate to 28).

    >>> format_strike_key(110)
    '00011000'
    >>> format_strike_key("310.5")
    '00031050'
    """
    try:
        value = Decimal(str(price).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid strike price: {price!r}") from None
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Invalid strike price: {price!r}")
    cents = int((value * 100).to_integral_value(rounding=ROUND_DOWN))
    key = str(cents).zfill(STRIKE_KEY_WIDTH)
    if len(key) > STRIKE_KEY_WIDTH:
        raise ValueError(f"Strike price too large for key: {price!r}")
    return key


def parse_strike_key(key: str) -> float:
    """Strike key back to price (inverse of format_strike_key)."""
    if not STRIKE_KEY_RE.match(key or ""):
        raise ValueError(f"Invalid strike key: {key!r}")
    return float(Decimal(int(key)) / 100)


def yymmdd_to_iso(yymmdd: str) -> str:
    """250815 -> 2025-08-15."""
    return f"20{yymmdd[0:2]}-{yymmdd[2:4]}-{yymmdd[4:6]}"


def iso_to_yymmdd(iso_date: str) -> str:
    """2025-08-15 -> 250815."""
    m = re.match(r"^(\d{4})-(\d{2})-(\d{2})$", (iso_date or "").strip())
    if not m:
        raise ValueError(f"Invalid YYYY-MM-DD date: {iso_date!r}")
    return f"{m.group(1)[2:]}{m.group(2)}{m.group(3)}"


# ============================================================================
# Parser
# ============================================================================


@dataclass
class ParsedOption:
    """One normalized vendor entry: where it goes and the StrikeQuote to store."""
    symbol: str
    date: str  # YYMMDD
    option_type: str  # C|P
    strike_key: str
    quote: Dict[str, Any] = field(default_factory=dict)

    @property
    def record_key(self) -> str:
        return build_record_key(self.symbol, self.date, self.option_type)

    @property
    def strike(self) -> float:
        return parse_strike_key(self.strike_key)


def _to_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


class OptionRecordParser:
    """
    Decodes one vendor option entry into a ParsedOption.

    Ticker, date, type and strike key come from the option code via regex, not
    from the separate expiration/strike/type fields. The quote date is the
    vendor expiration field, which is mandatory.
    """

    def __init__(self, clock: Optional[Clock] = None, tz_name: Optional[str] = None) -> None:
        self._clock = clock or SystemClock()
        self._tz_name = tz_name

    def parse_code(self, option_code: str) -> tuple:
        """Split a vendor code into (ticker, YYMMDD, C|P, strike key). Raises RecordParseError."""
        code = (option_code or "").strip()
        m = OPTION_CODE_RE.match(code)
        if not m:
            raise RecordParseError(f"Option code {code!r} does not match TICKER+YYMMDD+C|P+strike", option_code=code)
        ticker, yymmdd, opt_type, digits = m.groups()
        if len(digits) > STRIKE_KEY_WIDTH:
            raise RecordParseError(f"Option code {code!r} strike has more than {STRIKE_KEY_WIDTH} digits", option_code=code, symbol=ticker)
        return ticker, yymmdd, opt_type, digits.zfill(STRIKE_KEY_WIDTH)

    def parse(
        self,
        raw: Any,
        snapshot_timestamp: Optional[str],
        expected_symbol: Optional[str] = None,
        last_update: Optional[str] = None,
    ) -> ParsedOption:
        """
        Parse one raw entry.

        Args:
            raw: Vendor option dict (option, bid, ask, bidSize, ..., expiration).
            snapshot_timestamp: Payload-level CBOE timestamp, stored as cboe_timestamp.
            expected_symbol: Owning ticker; a code for another ticker is rejected.
            last_update: Local sync timestamp; taken fresh from the clock when None.

        Returns:
            ParsedOption with a fully coerced StrikeQuote.

        Raises:
            RecordParseError: code mismatch, foreign ticker, or missing date/option.
        """
        if not isinstance(raw, dict):
            raise RecordParseError(f"Option entry is not an object (got {type(raw).__name__})")
        code = str(raw.get("option") or "").strip()
        ticker, yymmdd, opt_type, strike_key = self.parse_code(code)

        if expected_symbol and ticker != expected_symbol.upper():
            raise RecordParseError(
                f"Option code {code!r} belongs to {ticker}, not {expected_symbol.upper()}",
                option_code=code,
                symbol=expected_symbol,
            )

        quote: Dict[str, Any] = {
            "last_update": last_update or local_now(self._clock, self._tz_name),
            "cboe_timestamp": snapshot_timestamp,
            "date": str(raw.get("expiration") or "").strip(),
            "option": code,
        }
        for name, vendor in _FLOAT_FIELDS.items():
            quote[name] = _to_float(raw.get(vendor))
        for name, vendor in _INT_FIELDS.items():
            quote[name] = _to_int(raw.get(vendor))
        quote["tick"] = raw.get("tick") or TICK_DEFAULT
        quote["last_trade_time"] = raw.get("lastTradeTime") or None

        if not quote["date"]:
            raise RecordParseError(f"Option {code!r} has no expiration date", option_code=code, symbol=ticker)

        ordered = {name: quote[name] for name in STRIKE_QUOTE_FIELDS}
        return ParsedOption(symbol=ticker, date=yymmdd, option_type=opt_type, strike_key=strike_key, quote=ordered)


__all__ = [
    "OPTION_CODE_RE",
    "RECORD_KEY_RE",
    "STRIKE_KEY_RE",
    "STRIKE_KEY_WIDTH",
    "OPTION_TYPES",
    "STRIKE_QUOTE_FIELDS",
    "TICK_DEFAULT",
    "RecordKey",
    "build_record_key",
    "parse_record_key",
    "format_strike_key",
    "parse_strike_key",
    "yymmdd_to_iso",
    "iso_to_yymmdd",
    "ParsedOption",
    "OptionRecordParser",
]

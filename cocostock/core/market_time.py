# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Clock and market-time helpers.

This module provides:
- Clock / SystemClock: injectable time source (schedulers and cleanup take a clock,
  so tests can advance time without sleeping)
- Local "mysql" timestamps (YYYY-MM-DD HH:MM:SS) in the market timezone, used for
  last_update and operator-facing log entries
- Tolerant parsing of CBOE snapshot timestamps and expiration dates
"""

from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Optional, Union

import pytz

MARKET_TZ_NAME = "America/New_York"
LOCAL_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)
_DATE_FORMATS = ("%Y-%m-%d", "%y%m%d", "%Y%m%d", "%m/%d/%Y")


class Clock:
    """Time source. Subclasses return epoch seconds; now() derives an aware UTC datetime."""

    def time(self) -> float:
        raise NotImplementedError

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.time(), tz=timezone.utc)


class SystemClock(Clock):
    """Wall clock."""

    def time(self) -> float:
        return time.time()


def market_tz(name: Optional[str] = None):
    """Return the pytz timezone for market-local timestamps."""
    return pytz.timezone(name or MARKET_TZ_NAME)


def format_local(dt: datetime, tz_name: Optional[str] = None) -> str:
    """Format an aware datetime as local YYYY-MM-DD HH:MM:SS in the market timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(market_tz(tz_name)).strftime(LOCAL_TIMESTAMP_FORMAT)


def local_now(clock: Optional[Clock] = None, tz_name: Optional[str] = None) -> str:
    """Current local timestamp string (equivalent of a mysql-format 'now')."""
    now = (clock or SystemClock()).now()
    return format_local(now, tz_name)


def parse_timestamp(value: Union[str, datetime, None], tz_name: Optional[str] = None) -> Optional[datetime]:
    """
    Parse a vendor or local timestamp into an aware datetime.

    Naive values are interpreted in the market timezone (CBOE publishes
    "2025-07-01 20:16:40" without offset). ISO strings with an offset or "Z" keep
    their offset. Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text:
            return None
        dt = None
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _TIMESTAMP_FORMATS:
                try:
                    dt = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if dt is None:
            return None
    if dt.tzinfo is None:
        dt = market_tz(tz_name).localize(dt)
    return dt


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse an expiration date (YYYY-MM-DD, YYMMDD, YYYYMMDD or MM/DD/YYYY). None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def market_today(clock: Optional[Clock] = None, tz_name: Optional[str] = None) -> date:
    """Today's calendar date in the market timezone."""
    now = (clock or SystemClock()).now()
    return now.astimezone(market_tz(tz_name)).date()


__all__ = [
    "MARKET_TZ_NAME",
    "LOCAL_TIMESTAMP_FORMAT",
    "Clock",
    "SystemClock",
    "market_tz",
    "format_local",
    "local_now",
    "parse_timestamp",
    "parse_date",
    "market_today",
]

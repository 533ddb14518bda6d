# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Read-API parameter validation. Each validator returns the normalized value or raises a typed 400."""

from __future__ import annotations

import re
from typing import Any, Optional

from cocostock.cboe.cboe_client import normalize_symbol
from cocostock.cboe.option_parser import STRIKE_QUOTE_FIELDS, format_strike_key
from cocostock.core.errors import InvalidParameterError

DATE_RE = re.compile(r"^\d{6}$")

_TRUE = ("true", "1")
_FALSE = ("false", "0")
_OPTION_TYPES = {"call": "C", "put": "P"}


def _empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def validate_symbol(symbol: str) -> str:
    """Letters only, returned uppercase. Raises InvalidSymbolError."""
    return normalize_symbol(symbol)


def validate_date(date: Optional[str]) -> Optional[str]:
    """Optional YYMMDD."""
    if _empty(date):
        return None
    text = str(date).strip()
    if not DATE_RE.match(text):
        raise InvalidParameterError("date", f"Invalid date {text!r}: expected YYMMDD (6 digits)")
    return text


def validate_strike(strike: Optional[str]) -> Optional[str]:
    """Optional positive strike price, returned as its 8-digit strike key (format_strike_key)."""
    if _empty(strike):
        return None
    text = str(strike).strip()
    try:
        return format_strike_key(text)
    except ValueError:
        raise InvalidParameterError("strike", f"Invalid strike price: {text}") from None


def validate_field(field: Optional[str]) -> Optional[str]:
    if _empty(field):
        return None
    text = str(field).strip()
    if text not in STRIKE_QUOTE_FIELDS:
        raise InvalidParameterError("field", f"Invalid field {text!r}; expected one of {', '.join(STRIKE_QUOTE_FIELDS)}")
    return text


def validate_exclude_bid_0(value: Any) -> bool:
    """Optional boolean: true/false/1/0 (case-insensitive). Absent means False."""
    if _empty(value):
        return False
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise InvalidParameterError("exclude_bid_0", f"Invalid exclude_bid_0 {value!r}: expected true, false, 1 or 0")


def validate_option_type(value: Optional[str]) -> Optional[str]:
    """Optional put|call, returned as P|C."""
    if _empty(value):
        return None
    text = str(value).strip().lower()
    if text not in _OPTION_TYPES:
        raise InvalidParameterError("type", f"Invalid option type {value!r}: expected put or call", code="invalid_option_type")
    return _OPTION_TYPES[text]


def sanitize_boolean_param(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE


__all__ = [
    "validate_symbol",
    "validate_date",
    "validate_strike",
    "validate_field",
    "validate_exclude_bid_0",
    "validate_option_type",
    "sanitize_boolean_param",
]

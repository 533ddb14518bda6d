# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Response shaping for the read API. OptionStore stays filter-free; filtering happens here."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from cocostock.cboe.option_parser import STRIKE_QUOTE_FIELDS, parse_record_key


def _bid_is_zero(quote: Any) -> bool:
    if not isinstance(quote, dict) or "bid" not in quote:
        return False
    try:
        return float(quote["bid"]) == 0.0
    except (TypeError, ValueError):
        return False


def filter_record_by_bid(record: Dict[str, Any]) -> Dict[str, Any]:
    """Drop strikes whose bid is exactly 0."""
    return {sk: q for sk, q in record.items() if not _bid_is_zero(q)}


def filter_options_by_bid(records: Dict[str, Any]) -> Dict[str, Any]:
    """
    {record_key: {strike_key: quote}} without bid == 0 strikes.
    Records left with no strikes are dropped; non-dict values pass through.
    """
    out: Dict[str, Any] = {}
    for key, record in records.items():
        if not isinstance(record, dict):
            out[key] = record
            continue
        kept = filter_record_by_bid(record)
        if kept:
            out[key] = kept
    return out


def filter_by_type(records: Dict[str, Any], option_type: Optional[str]) -> Dict[str, Any]:
    """Keep only record keys of option_type (C|P). None keeps everything."""
    if not option_type:
        return dict(records)
    out = {}
    for key, record in records.items():
        parsed = parse_record_key(key)
        if parsed is not None and parsed.option_type == option_type:
            out[key] = record
    return out


def get_valid_option_fields() -> List[str]:
    return list(STRIKE_QUOTE_FIELDS)


def is_valid_option_field(field: str) -> bool:
    return field in STRIKE_QUOTE_FIELDS


__all__ = [
    "filter_record_by_bid",
    "filter_options_by_bid",
    "filter_by_type",
    "get_valid_option_fields",
    "is_valid_option_field",
]

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
CBOE delayed quotes.

Client (cboe_client):
  - GET https://cdn.cboe.com/api/global/delayed_quotes/options/{TICKER}.json

Parsing (option_parser):
  - vendor option code -> (ticker, YYMMDD, C|P, strike key) + StrikeQuote
  - record / strike key helpers
"""
from cocostock.cboe.cboe_client import CboeClient, normalize_symbol
from cocostock.cboe.option_parser import (
    STRIKE_QUOTE_FIELDS,
    OptionRecordParser,
    ParsedOption,
    RecordKey,
    build_record_key,
    format_strike_key,
    parse_record_key,
    parse_strike_key,
)

__all__ = [
    "CboeClient",
    "normalize_symbol",
    "STRIKE_QUOTE_FIELDS",
    "OptionRecordParser",
    "ParsedOption",
    "RecordKey",
    "build_record_key",
    "format_strike_key",
    "parse_record_key",
    "parse_strike_key",
]

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
CBOE delayed-quotes endpoint manifest: single source of truth for upstream URLs.

All CBOE HTTP callers MUST build URLs through this module.

  GET {BASE_DELAYED_OPTIONS}{TICKER}.json
  -> {"timestamp": "...", "data": {"options": [{"option": "LMT250801C00310000", ...}, ...]}}
"""

from __future__ import annotations

BASE_DELAYED_OPTIONS = "https://cdn.cboe.com/api/global/delayed_quotes/options/"

# Known-good symbol for connectivity checks
CONNECTIVITY_SYMBOL = "LMT"


def url_options(symbol: str, base: str = BASE_DELAYED_OPTIONS) -> str:
    return f"{base.rstrip('/')}/{symbol.strip().upper()}.json"


__all__ = [
    "BASE_DELAYED_OPTIONS",
    "CONNECTIVITY_SYMBOL",
    "url_options",
]

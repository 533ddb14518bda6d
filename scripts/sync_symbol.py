#!/usr/bin/env python3
# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
One-shot sync: fetch the CBOE chain for one or more registered symbols and store it.

Usage:
  python scripts/sync_symbol.py LMT BXMT [--register] [--json]

Exit codes:
  0 - every symbol synced (at least one option stored)
  1 - at least one symbol failed
  2 - bad arguments
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(repo_root))

from dotenv import load_dotenv

load_dotenv(repo_root / ".env")

from cocostock.core.errors import CocoStockError
from cocostock.service import build_service

logger = logging.getLogger("sync_symbol")


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync CBOE option chains for registered symbols")
    parser.add_argument("symbols", nargs="+", help="Tickers to sync")
    parser.add_argument("--register", action="store_true", help="Register unknown symbols first (no upstream check)")
    parser.add_argument("--json", action="store_true", help="Print SyncResult JSON instead of a summary line")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    service = build_service()
    failures = 0
    for ticker in args.symbols:
        try:
            symbol = ticker.strip().upper()
            if args.register and not service.registry.symbol_exists(symbol):
                service.registry.create_symbol(symbol)
                logger.info("[SYNC] registered symbol=%s", symbol)
            result = service.sync_symbol(symbol)
        except CocoStockError as e:
            print(f"{ticker}: ERROR {e.code}: {e}", file=sys.stderr)
            failures += 1
            continue
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            status = "OK" if result.success else "FAILED"
            print(f"{result.symbol}: {status} processed={result.processed} errors={len(result.errors)} {result.message}")
        if not result.success:
            failures += 1
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())

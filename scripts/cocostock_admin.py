#!/usr/bin/env python3
# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
Operator CLI over the admin operations. Prints JSON.

Timer state lives in the running server or scheduler process; cancel the next
refill or drain through the admin API (POST /api/admin/cancel-refill).

Usage:
  python scripts/cocostock_admin.py add LMT
  python scripts/cocostock_admin.py refill
  python scripts/cocostock_admin.py drain
  python scripts/cocostock_admin.py force-drain
  python scripts/cocostock_admin.py buffer
  python scripts/cocostock_admin.py schedule [--set hourly] [--batch-size 10]
  python scripts/cocostock_admin.py logs [--limit 20]
  python scripts/cocostock_admin.py cleanup [--stats]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

repo_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(repo_root))

from dotenv import load_dotenv

load_dotenv(repo_root / ".env")

from cocostock.core.config import REFILL_SCHEDULES
from cocostock.core.errors import CocoStockError
from cocostock.service import StockOptionsService, build_service


def _run(service: StockOptionsService, args: argparse.Namespace) -> Any:
    cmd = args.command
    if cmd == "add":
        return service.add_symbol(args.symbol, verify_upstream=not args.no_verify)
    if cmd == "remove":
        return {"symbol": args.symbol.upper(), "deleted": service.remove_symbol(args.symbol)}
    if cmd == "list":
        return service.list_symbols()
    if cmd == "refill":
        return service.trigger_refill()
    if cmd == "drain":
        return service.trigger_drain_once().to_dict()
    if cmd == "force-drain":
        return service.force_drain_now().to_dict()
    if cmd == "buffer":
        if args.clear:
            service.buffer.clear()
        return service.get_buffer_status()
    if cmd == "schedule":
        if args.set:
            service.scheduler.update_schedule(args.set)
        if args.batch_size is not None:
            service.scheduler.set_batch_size(args.batch_size)
        return service.get_schedule_status()
    if cmd == "logs":
        if args.clear:
            service.scheduler.clear_logs()
            return {"cleared": True}
        return service.scheduler.get_recent_logs(args.limit)
    if cmd == "cleanup":
        if args.stats:
            return service.collector.statistics()
        return service.scheduler.cleanup_old_options()
    if cmd == "status":
        return service.get_status()
    if cmd == "test":
        return service.test_functionality()
    raise ValueError(f"Unknown command {cmd!r}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Coco Stock Options admin CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    p_add = sub.add_parser("add", help="Register a symbol and queue it")
    p_add.add_argument("symbol")
    p_add.add_argument("--no-verify", action="store_true", help="Skip the CBOE existence check")
    p_rm = sub.add_parser("remove", help="Remove a symbol and its stored options")
    p_rm.add_argument("symbol")
    sub.add_parser("list", help="List registered symbols")
    sub.add_parser("refill", help="Enqueue every registered symbol now")
    sub.add_parser("drain", help="Run the drain trigger once")
    sub.add_parser("force-drain", help="Process one batch now without scheduling")
    p_buf = sub.add_parser("buffer", help="Buffer info, statistics and contents")
    p_buf.add_argument("--clear", action="store_true", help="Empty the buffer first")
    p_sched = sub.add_parser("schedule", help="Show or change the schedule")
    p_sched.add_argument("--set", choices=REFILL_SCHEDULES, help="New refill interval")
    p_sched.add_argument("--batch-size", type=int, help="New drain batch size (1-50)")
    p_logs = sub.add_parser("logs", help="Recent cron execution log")
    p_logs.add_argument("--limit", type=int, default=10)
    p_logs.add_argument("--clear", action="store_true")
    p_clean = sub.add_parser("cleanup", help="Delete expired/stale strikes")
    p_clean.add_argument("--stats", action="store_true", help="Only report counts")
    sub.add_parser("status", help="Overall status")
    sub.add_parser("test", help="Connectivity and scheduler self-test")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    service = build_service()
    try:
        out = _run(service, args)
    except CocoStockError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1
    print(json.dumps(out, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

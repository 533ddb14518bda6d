#!/usr/bin/env python3
# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
Headless scheduler: runs the refill / drain / cleanup triggers without the HTTP server.

Usage:
  python scripts/run_scheduler.py [--schedule hourly] [--batch-size 5]

Stops on SIGINT / SIGTERM; an in-flight batch finishes first.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

repo_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(repo_root))

from dotenv import load_dotenv

load_dotenv(repo_root / ".env")

from cocostock.core.config import REFILL_SCHEDULES
from cocostock.core.errors import ConfigError
from cocostock.service import build_service

logger = logging.getLogger("run_scheduler")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the Coco Stock Options scheduler loop")
    parser.add_argument("--schedule", choices=REFILL_SCHEDULES, help="Persist a new refill interval before starting")
    parser.add_argument("--batch-size", type=int, help="Persist a new drain batch size (1-50) before starting")
    parser.add_argument("--refill-now", action="store_true", help="Run one refill immediately after start")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    service = build_service()
    try:
        if args.schedule:
            service.settings.set_schedule(args.schedule)
        if args.batch_size is not None:
            service.settings.set_batch_size(args.batch_size)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    stop = threading.Event()

    def _on_signal(signum, frame) -> None:
        logger.info("[SCHED] signal=%s; stopping", signum)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    service.start(run_thread=True)
    if args.refill_now:
        service.trigger_refill()
    status = service.get_schedule_status()
    logger.info(
        "[SCHED] running schedule=%s batch_size=%s next_refill=%s next_cleanup=%s",
        status["current_schedule"], status["batch_size"], status["update_buffer_scheduled"], status["cleanup_scheduled"],
    )
    while not stop.wait(timeout=1.0):
        pass
    service.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

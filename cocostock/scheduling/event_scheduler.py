# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""In-process event scheduler: named hooks, recurring and single events, injectable clock.

run_due() fires every event whose time has come and is the only place callbacks
execute. The background thread (start/stop) just calls run_due() every
poll_interval_sec; tests drive run_due() directly after advancing a fake clock.

Recurring events are rescheduled before their callback runs, so a callback that
clears its own hook stops the recurrence.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from cocostock.core.market_time import Clock, SystemClock

logger = logging.getLogger(__name__)

MINUTE_IN_SECONDS = 60
HOUR_IN_SECONDS = 3600
DAY_IN_SECONDS = 86400

RECURRENCES: Dict[str, int] = {
    "every_15_minutes": 15 * MINUTE_IN_SECONDS,
    "every_30_minutes": 30 * MINUTE_IN_SECONDS,
    "hourly": HOUR_IN_SECONDS,
    "twicedaily": 12 * HOUR_IN_SECONDS,
    "daily": DAY_IN_SECONDS,
}

DEFAULT_POLL_INTERVAL_SEC = 5.0


@dataclass(order=True)
class ScheduledEvent:
    timestamp: float
    seq: int
    hook: str = field(compare=False)
    recurrence: Optional[str] = field(default=None, compare=False)

    @property
    def interval(self) -> Optional[int]:
        return RECURRENCES.get(self.recurrence) if self.recurrence else None

    def to_dict(self) -> Dict[str, Any]:
        return {"hook": self.hook, "timestamp": self.timestamp, "recurrence": self.recurrence}


class EventScheduler:
    """Timer + callback abstraction. Thread-safe; callbacks run outside the lock."""

    def __init__(self, clock: Optional[Clock] = None, poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC) -> None:
        self._clock = clock or SystemClock()
        self._poll_interval = poll_interval_sec
        self._callbacks: Dict[str, Callable[[], Any]] = {}
        self._events: List[ScheduledEvent] = []
        self._seq = itertools.count()
        self._lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._last_tick: Optional[float] = None

    @property
    def clock(self) -> Clock:
        return self._clock

    def register(self, hook: str, callback: Callable[[], Any]) -> None:
        with self._lock:
            self._callbacks[hook] = callback

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule_event(self, hook: str, recurrence: str, first_run: Optional[float] = None) -> ScheduledEvent:
        """Recurring event; first occurrence at first_run (default: now)."""
        if recurrence not in RECURRENCES:
            raise ValueError(f"Unknown recurrence {recurrence!r}; expected one of {', '.join(RECURRENCES)}")
        ts = self._clock.time() if first_run is None else float(first_run)
        return self._push(ts, hook, recurrence)

    def schedule_single_event(self, hook: str, delay_sec: float = 0.0) -> ScheduledEvent:
        """One-off event delay_sec from now."""
        return self._push(self._clock.time() + float(delay_sec), hook, None)

    def _push(self, ts: float, hook: str, recurrence: Optional[str]) -> ScheduledEvent:
        event = ScheduledEvent(timestamp=ts, seq=next(self._seq), hook=hook, recurrence=recurrence)
        with self._lock:
            heapq.heappush(self._events, event)
        logger.debug("[SCHED] scheduled hook=%s at=%.0f recurrence=%s", hook, ts, recurrence or "once")
        return event

    def next_scheduled(self, hook: str) -> Optional[float]:
        """Timestamp of the earliest pending event for hook, or None."""
        with self._lock:
            times = [e.timestamp for e in self._events if e.hook == hook]
        return min(times) if times else None

    def clear_scheduled_hook(self, hook: str) -> int:
        """Remove every pending event for hook. Returns how many were removed."""
        with self._lock:
            before = len(self._events)
            self._events = [e for e in self._events if e.hook != hook]
            heapq.heapify(self._events)
            removed = before - len(self._events)
        if removed:
            logger.debug("[SCHED] cleared hook=%s removed=%d", hook, removed)
        return removed

    def skip_next(self, hook: str) -> Optional[ScheduledEvent]:
        """
        Cancel only the next occurrence of hook. A recurring event moves to its
        following occurrence; a single event is removed. Returns the cancelled event.
        """
        with self._lock:
            pending = sorted(e for e in self._events if e.hook == hook)
            if not pending:
                return None
            target = pending[0]
            self._events.remove(target)
            heapq.heapify(self._events)
            if target.interval:
                heapq.heappush(
                    self._events,
                    ScheduledEvent(
                        timestamp=target.timestamp + target.interval,
                        seq=next(self._seq),
                        hook=hook,
                        recurrence=target.recurrence,
                    ),
                )
        return target

    def list_events(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [e.to_dict() for e in sorted(self._events)]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run_due(self) -> int:
        """Fire all events due at the current clock time. Returns how many callbacks ran."""
        now = self._clock.time()
        due: List[ScheduledEvent] = []
        with self._lock:
            while self._events and self._events[0].timestamp <= now:
                event = heapq.heappop(self._events)
                due.append(event)
                if event.interval:
                    next_ts = event.timestamp + event.interval
                    while next_ts <= now:
                        next_ts += event.interval
                    heapq.heappush(
                        self._events,
                        ScheduledEvent(timestamp=next_ts, seq=next(self._seq), hook=event.hook, recurrence=event.recurrence),
                    )
            self._last_tick = now

        ran = 0
        for event in due:
            callback = self._callbacks.get(event.hook)
            if callback is None:
                logger.warning("[SCHED] no callback registered for hook=%s", event.hook)
                continue
            try:
                callback()
            except Exception:
                logger.exception("[SCHED] hook=%s raised", event.hook)
            ran += 1
        return ran

    def _run_loop(self) -> None:
        logger.info("[SCHED] loop started poll_interval=%.1fs", self._poll_interval)
        while not self._stop_event.wait(self._poll_interval):
            try:
                self.run_due()
            except Exception:
                logger.exception("[SCHED] tick failed")
        logger.info("[SCHED] loop stopped")

    def start(self) -> None:
        """Start the background thread (idempotent)."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run_loop, daemon=True, name="CocoStock-Scheduler")
            self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the background thread (idempotent). An in-flight callback finishes first."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout)
        self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running(),
            "poll_interval_sec": self._poll_interval,
            "last_tick": self._last_tick,
            "pending": len(self._events),
        }


__all__ = [
    "RECURRENCES",
    "MINUTE_IN_SECONDS",
    "HOUR_IN_SECONDS",
    "DAY_IN_SECONDS",
    "ScheduledEvent",
    "EventScheduler",
]

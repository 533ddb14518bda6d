# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Scheduling: event scheduler (timer + callback) and the refill/drain/cleanup triggers."""
from cocostock.scheduling.cron_jobs import HOOK_CLEANUP, HOOK_DRAIN, HOOK_REFILL, SyncScheduler
from cocostock.scheduling.event_scheduler import RECURRENCES, EventScheduler, ScheduledEvent

__all__ = [
    "HOOK_CLEANUP",
    "HOOK_DRAIN",
    "HOOK_REFILL",
    "SyncScheduler",
    "RECURRENCES",
    "EventScheduler",
    "ScheduledEvent",
]

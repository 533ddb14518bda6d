# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Sync pipeline: coordinator, buffer queue, garbage collection."""
from cocostock.sync.buffer import Buffer
from cocostock.sync.garbage_collector import GarbageCollector
from cocostock.sync.models import BatchResult, SyncResult
from cocostock.sync.sync_coordinator import SyncCoordinator

__all__ = ["Buffer", "GarbageCollector", "BatchResult", "SyncResult", "SyncCoordinator"]

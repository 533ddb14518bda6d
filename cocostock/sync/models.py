# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Result values for sync and buffer drains (ephemeral; logged, never persisted)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class SyncResult:
    """Outcome of one syncSymbol attempt."""
    symbol: str
    success: bool = False
    message: str = ""
    processed: int = 0
    errors: List[str] = field(default_factory=list)
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "success": self.success,
            "message": self.message,
            "processed": self.processed,
            "errors": list(self.errors),
            "timestamp": self.timestamp,
        }


@dataclass
class BatchResult:
    """
    Outcome of one dequeueBatch call.

    skipped=True means the call was rejected because another drain held the
    processing flag; nothing was dequeued.
    """
    processed: int = 0
    successful: int = 0
    errors: List[str] = field(default_factory=list)
    results: List[SyncResult] = field(default_factory=list)
    buffer_empty: bool = True
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "successful": self.successful,
            "errors": list(self.errors),
            "results": [r.to_dict() for r in self.results],
            "buffer_empty": self.buffer_empty,
            "skipped": self.skipped,
        }


__all__ = ["SyncResult", "BatchResult"]

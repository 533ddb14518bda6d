# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Coco Stock Options: CBOE option-chain ingestion, buffered sync and expiry cleanup."""

__version__ = "1.0.0"

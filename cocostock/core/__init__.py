# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Core: configuration, error taxonomy, clock."""

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Persistence: SQLite key/value backend, symbol registry, option records."""
from cocostock.storage.database import MetaStore
from cocostock.storage.option_store import OptionStore
from cocostock.storage.settings import RuntimeSettings
from cocostock.storage.symbol_registry import Symbol, SymbolRegistry

__all__ = ["MetaStore", "OptionStore", "RuntimeSettings", "Symbol", "SymbolRegistry"]

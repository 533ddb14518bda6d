# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Shared fixtures: temp SQLite store, fake clock, canned CBOE client, wired service."""

from __future__ import annotations

import pytest

from cocostock.cboe.option_parser import OptionRecordParser
from cocostock.service import StockOptionsService
from cocostock.storage.database import MetaStore
from cocostock.storage.option_store import OptionStore
from cocostock.storage.settings import RuntimeSettings
from cocostock.storage.symbol_registry import SymbolRegistry
from cocostock.sync.sync_coordinator import SyncCoordinator
from tests.fixtures.cboe_payloads import chain_payload
from tests.fixtures.fakes import FakeCboeClient, FakeClock, make_config

TZ = "America/New_York"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def meta_store(tmp_path):
    store = MetaStore(tmp_path / "cocostock_test.db", timeout_sec=5.0)
    store.init_schema()
    return store


@pytest.fixture
def registry(meta_store, clock):
    return SymbolRegistry(meta_store, clock=clock, tz_name=TZ)


@pytest.fixture
def option_store(meta_store):
    return OptionStore(meta_store)


@pytest.fixture
def settings(meta_store):
    s = RuntimeSettings(meta_store)
    s.ensure_defaults()
    return s


@pytest.fixture
def fake_client(clock):
    return FakeCboeClient(
        payloads={"LMT": chain_payload("LMT"), "BXMT": chain_payload("BXMT")},
        clock=clock,
        tz_name=TZ,
    )


@pytest.fixture
def parser(clock):
    return OptionRecordParser(clock=clock, tz_name=TZ)


@pytest.fixture
def coordinator(registry, fake_client, parser, option_store, clock):
    return SyncCoordinator(registry, fake_client, parser, option_store, clock=clock, tz_name=TZ)


@pytest.fixture
def service(tmp_path, clock, fake_client):
    svc = StockOptionsService(make_config(tmp_path / "service.db"), clock=clock, client=fake_client)
    yield svc
    svc.events.stop()

# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Tests for SyncCoordinator.sync_symbol: abort vs per-record failure policy."""

from __future__ import annotations

from cocostock.core.errors import DecodeError, TransportError
from tests.fixtures.cboe_payloads import SNAPSHOT_TS, chain_payload, option_entry


class TestSyncSymbol:
    def test_success_stores_every_entry(self, registry, coordinator, option_store):
        registry.create_symbol("LMT")
        result = coordinator.sync_symbol("LMT")
        assert result.success is True
        assert result.processed == 4
        assert result.errors == []
        assert result.message == "Successfully processed 4 options for LMT"
        assert result.timestamp == "2025-07-02 10:00:00"
        assert option_store.list_keys("LMT") == ["LMT250815C", "LMT250815P", "LMT250919C"]
        quote = option_store.get_strike("LMT", "250815", "C", "00450000")
        assert quote["cboe_timestamp"] == SNAPSHOT_TS
        assert quote["last_update"] == "2025-07-02 10:00:00"

    def test_partial_failure_contained(self, registry, coordinator, fake_client):
        """N valid entries plus one malformed -> processed N, one error, success."""
        entries = [option_entry("LMT250815C00450000"), option_entry("LMT250815P00450000"), option_entry("NOT-A-CODE")]
        fake_client.payloads["LMT"] = chain_payload("LMT", entries)
        registry.create_symbol("LMT")
        result = coordinator.sync_symbol("LMT")
        assert result.processed == 2
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to parse option data")
        assert result.success is True

    def test_not_registered(self, coordinator, fake_client):
        result = coordinator.sync_symbol("LMT")
        assert result.success is False
        assert result.message == "Stock LMT not registered"
        assert fake_client.calls == []

    def test_transport_error_aborts(self, registry, coordinator, fake_client, option_store):
        fake_client.errors["LMT"] = TransportError("CBOE request failed: timed out", symbol="LMT")
        registry.create_symbol("LMT")
        result = coordinator.sync_symbol("LMT")
        assert result.success is False
        assert "timed out" in result.message
        assert option_store.list_keys("LMT") == []

    def test_status_error_aborts(self, registry, coordinator):
        registry.create_symbol("ZZZZ")
        result = coordinator.sync_symbol("ZZZZ")
        assert result.success is False
        assert result.message == "CBOE API returned status code 403"

    def test_decode_error_aborts(self, registry, coordinator, fake_client):
        fake_client.errors["LMT"] = DecodeError("Failed to parse JSON response from CBOE API", symbol="LMT")
        registry.create_symbol("LMT")
        assert coordinator.sync_symbol("LMT").message == "Failed to parse JSON response from CBOE API"

    def test_invalid_structure(self, registry, coordinator, fake_client):
        fake_client.payloads["LMT"] = {"timestamp": SNAPSHOT_TS, "data": {"symbol": "LMT"}}
        registry.create_symbol("LMT")
        result = coordinator.sync_symbol("LMT")
        assert result.success is False
        assert result.message == "Invalid CBOE API response structure"

    def test_all_entries_bad(self, registry, coordinator, fake_client):
        fake_client.payloads["LMT"] = chain_payload("LMT", [option_entry("XX"), option_entry("BXMT250815C00011000")])
        registry.create_symbol("LMT")
        result = coordinator.sync_symbol("LMT")
        assert result.success is False
        assert result.processed == 0
        assert len(result.errors) == 2
        assert result.message == "Failed to process options data"

    def test_failed_record_write_counted_per_strike(self, registry, coordinator, option_store, monkeypatch):
        calls = []

        def _flaky(symbol, date, option_type, quotes):
            calls.append((date, option_type, sorted(quotes)))
            return (date, option_type) != ("250815", "C")

        monkeypatch.setattr(option_store, "upsert_strikes", _flaky)
        registry.create_symbol("LMT")
        result = coordinator.sync_symbol("LMT")
        assert result.processed == 2
        assert result.errors == [
            "Failed to save option LMT250815C strike 00450000",
            "Failed to save option LMT250815C strike 00460000",
        ]
        assert result.success is True

    def test_one_write_per_record_key(self, registry, coordinator, option_store, monkeypatch):
        calls = []
        original = option_store.upsert_strikes

        def _spy(symbol, date, option_type, quotes):
            calls.append((date, option_type, sorted(quotes)))
            return original(symbol, date, option_type, quotes)

        monkeypatch.setattr(option_store, "upsert_strikes", _spy)
        registry.create_symbol("LMT")
        assert coordinator.sync_symbol("LMT").processed == 4
        assert sorted(calls) == [
            ("250815", "C", ["00450000", "00460000"]),
            ("250815", "P", ["00450000"]),
            ("250919", "C", ["00460000"]),
        ]

    def test_entry_without_expiration_rejected(self, registry, coordinator, fake_client, option_store):
        undated = option_entry("LMT250815P00450000")
        del undated["expiration"]
        fake_client.payloads["LMT"] = chain_payload("LMT", [option_entry("LMT250815C00450000"), undated])
        registry.create_symbol("LMT")
        result = coordinator.sync_symbol("LMT")
        assert result.processed == 1
        assert result.errors == ["Failed to parse option data: Option 'LMT250815P00450000' has no expiration date"]
        assert option_store.list_keys("LMT") == ["LMT250815C"]

    def test_resync_updates_in_place(self, registry, coordinator, fake_client, option_store, clock):
        registry.create_symbol("LMT")
        coordinator.sync_symbol("LMT")
        fake_client.payloads["LMT"] = chain_payload("LMT", [option_entry("LMT250815C00450000", bid=20.0)])
        clock.advance(3600)
        coordinator.sync_symbol("LMT")
        quote = option_store.get_strike("LMT", "250815", "C", "00450000")
        assert quote["bid"] == 20.0
        assert quote["last_update"] == "2025-07-02 11:00:00"
        # untouched strikes keep their earlier values
        assert option_store.get_strike("LMT", "250815", "C", "00460000")["last_update"] == "2025-07-02 10:00:00"


class TestSyncStatus:
    def test_unknown(self, coordinator):
        assert coordinator.get_sync_status("LMT") == {"exists": False, "last_sync": None, "options_count": 0}

    def test_after_sync(self, registry, coordinator):
        registry.create_symbol("LMT")
        coordinator.sync_symbol("LMT")
        status = coordinator.get_sync_status("lmt")
        assert status["exists"] is True
        assert status["last_sync"] == "2025-07-02 10:00:00"
        assert status["options_count"] == 3

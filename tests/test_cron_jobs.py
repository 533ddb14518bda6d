# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Tests for the refill / drain / cleanup triggers, driven through run_due() with a fake clock."""

from __future__ import annotations

import pytest

from cocostock.core.errors import ConfigError
from cocostock.scheduling.cron_jobs import HOOK_CLEANUP, HOOK_DRAIN, HOOK_REFILL, MAX_LOG_ENTRIES


def _register(service, *tickers):
    for ticker in tickers:
        service.registry.create_symbol(ticker)


class TestRefill:
    def test_refill_enqueues_all_and_schedules_drain(self, service, clock):
        _register(service, "LMT", "BXMT")
        out = service.trigger_refill()
        assert out == {"symbols": 2, "added": 2, "drain_scheduled": True}
        assert sorted(service.buffer.get_buffer()) == ["BXMT", "LMT"]
        assert service.events.next_scheduled(HOOK_DRAIN) == clock.time() + 30

    def test_refill_does_not_duplicate_pending_drain(self, service):
        _register(service, "LMT")
        service.trigger_refill()
        out = service.trigger_refill()
        assert out["added"] == 0
        assert out["drain_scheduled"] is False
        assert [e["hook"] for e in service.events.list_events()].count(HOOK_DRAIN) == 1

    def test_refill_with_no_symbols(self, service):
        out = service.trigger_refill()
        assert out == {"symbols": 0, "added": 0, "drain_scheduled": False}
        assert service.events.next_scheduled(HOOK_DRAIN) is None
        assert service.scheduler.get_recent_logs(1)[0]["message"] == "Buffer updated with 0 stocks"


class TestDrainChain:
    def test_chain_rearms_until_empty(self, service, clock):
        _register(service, "LMT", "BXMT", "ZZZZ")
        service.scheduler.set_batch_size(1)
        service.trigger_refill()

        batches = 0
        for _ in range(10):
            next_ts = service.events.next_scheduled(HOOK_DRAIN)
            if next_ts is None:
                break
            clock.t = next_ts
            assert service.events.run_due() == 1
            batches += 1
        assert batches == 3
        assert service.buffer.is_empty()
        assert service.events.next_scheduled(HOOK_DRAIN) is None
        assert service.coordinator.get_sync_status("LMT")["options_count"] == 3
        assert service.coordinator.get_sync_status("BXMT")["options_count"] == 3

    def test_drain_rearms_after_delay(self, service, clock):
        _register(service, "LMT", "BXMT")
        service.scheduler.set_batch_size(1)
        service.buffer.enqueue_many(["LMT", "BXMT"])
        result = service.trigger_drain_once()
        assert result.processed == 1
        assert result.buffer_empty is False
        assert service.events.next_scheduled(HOOK_DRAIN) == clock.time() + 60

    def test_skipped_drain_rearms(self, service, clock):
        from cocostock.sync.buffer import PROCESSING_STATUS_OPTION

        service.buffer.enqueue("LMT")
        service.store.update_option(PROCESSING_STATUS_OPTION, {"is_processing": True, "started_at": clock.time(), "run_id": "x"})
        result = service.trigger_drain_once()
        assert result.skipped is True
        assert service.events.next_scheduled(HOOK_DRAIN) is not None
        assert service.scheduler.get_recent_logs(1)[0]["message"] == "Batch skipped: another batch is processing"

    def test_force_drain_leaves_schedule_alone(self, service):
        _register(service, "LMT", "BXMT")
        service.scheduler.set_batch_size(1)
        service.buffer.enqueue_many(["LMT", "BXMT"])
        result = service.force_drain_now()
        assert result.processed == 1
        assert service.events.next_scheduled(HOOK_DRAIN) is None

    def test_cancel_next_drain(self, service):
        assert service.cancel_next_drain() is False
        service.scheduler.ensure_drain_scheduled()
        assert service.cancel_next_drain() is True
        assert service.events.next_scheduled(HOOK_DRAIN) is None


class TestSchedule:
    def test_update_schedule_installs_refill_now(self, service, clock):
        assert service.scheduler.update_schedule("Hourly") == "hourly"
        assert service.settings.get_schedule() == "hourly"
        assert service.events.next_scheduled(HOOK_REFILL) == clock.time()
        assert service.get_schedule_status()["update_buffer_scheduled"] == "2025-07-02 10:00:00"

    def test_never_removes_refill(self, service):
        service.scheduler.update_schedule("hourly")
        service.scheduler.update_schedule("never")
        assert service.events.next_scheduled(HOOK_REFILL) is None

    def test_invalid_schedule(self, service):
        with pytest.raises(ConfigError):
            service.scheduler.update_schedule("weekly")
        assert service.settings.get_schedule() == "never"

    def test_invalid_batch_size(self, service):
        with pytest.raises(ConfigError):
            service.scheduler.set_batch_size(51)
        assert service.settings.get_batch_size() == 5

    def test_cancel_next_refill_keeps_recurrence(self, service, clock):
        service.scheduler.update_schedule("hourly")
        assert service.cancel_next_refill() is True
        assert service.events.next_scheduled(HOOK_REFILL) == clock.time() + 3600

    def test_cancel_refill_without_schedule(self, service):
        assert service.cancel_next_refill() is False

    def test_setup_installs_persisted_schedule_and_cleanup(self, service):
        service.settings.set_schedule("twicedaily")
        service.start(run_thread=False)
        assert service.events.next_scheduled(HOOK_REFILL) is not None
        assert service.events.next_scheduled(HOOK_CLEANUP) is not None
        service.stop()
        assert service.events.list_events() == []

    def test_status_fields(self, service):
        status = service.get_schedule_status()
        assert status["update_buffer_scheduled"] is None
        assert status["process_batch_scheduled"] is None
        assert status["last_run"] == "Never"
        assert status["current_schedule"] == "never"
        assert status["batch_size"] == 5


class TestLogs:
    def test_logs_capped(self, service):
        for i in range(MAX_LOG_ENTRIES + 5):
            service.scheduler.log_cron_execution(f"msg {i}")
        logs = service.scheduler.get_recent_logs(500)
        assert len(logs) == MAX_LOG_ENTRIES
        assert logs[0]["message"] == "msg 5"
        assert logs[-1] == {"timestamp": "2025-07-02 10:00:00", "message": f"msg {MAX_LOG_ENTRIES + 4}"}

    def test_recent_logs_limit(self, service):
        for i in range(3):
            service.scheduler.log_cron_execution(f"msg {i}")
        assert [e["message"] for e in service.scheduler.get_recent_logs(2)] == ["msg 1", "msg 2"]
        service.scheduler.clear_logs()
        assert service.scheduler.get_recent_logs() == []


class TestCronSelfTest:
    def test_can_schedule(self, service):
        out = service.scheduler.test_cron_functionality()
        assert out["success"] is True
        assert out["tests"]["can_schedule"] is True
        assert out["tests"]["cron_enabled"] is False
        assert out["tests"]["has_schedule"] is False
        assert service.events.list_events() == []


class TestCleanupTrigger:
    def test_cleanup_logs_result(self, service, clock):
        _register(service, "LMT")
        service.sync_symbol("LMT")
        clock.advance(3 * 24 * 3600)
        out = service.scheduler.cleanup_old_options()
        assert out["deleted"] == 4
        assert service.scheduler.get_recent_logs(1)[0]["message"] == "Old options cleanup: 4 strikes deleted, 0 errors"

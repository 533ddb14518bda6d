# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Admin API: /api/admin/*. Symbols, buffer, schedule, cleanup and diagnostics. Requires x-api-key when configured."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from cocostock.api.deps import get_service, require_admin_key
from cocostock.api.validators import validate_symbol
from cocostock.core.errors import InvalidParameterError
from cocostock.core.market_time import parse_date
from cocostock.service import StockOptionsService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------


@router.get("/symbols")
def admin_list_symbols(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    symbols = service.list_symbols()
    return {"symbols": symbols, "count": len(symbols)}


@router.post("/symbols")
def admin_add_symbol(
    symbol: str = Body(..., embed=True),
    verify_upstream: bool = Body(True, embed=True),
    service: StockOptionsService = Depends(get_service),
) -> JSONResponse:
    """Register a symbol and queue it for its first sync. 409 when it exists, 404 when CBOE has no chain."""
    result = service.add_symbol(symbol, verify_upstream=verify_upstream)
    return JSONResponse(status_code=201, content=result)


@router.delete("/symbols/{symbol}")
def admin_remove_symbol(symbol: str, service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    ticker = validate_symbol(symbol)
    deleted = service.remove_symbol(ticker)
    return {"symbol": ticker, "deleted": deleted}


@router.get("/symbols/{symbol}/status")
def admin_symbol_status(symbol: str, service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    ticker = validate_symbol(symbol)
    out: Dict[str, Any] = {"symbol": ticker}
    out.update(service.coordinator.get_sync_status(ticker))
    return out


# ---------------------------------------------------------------------------
# Buffer / triggers
# ---------------------------------------------------------------------------


@router.post("/refill")
def admin_trigger_refill(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.trigger_refill()


@router.post("/drain")
def admin_trigger_drain(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    """Run the drain trigger once; re-arms the chain while symbols remain."""
    return service.trigger_drain_once().to_dict()


@router.post("/force-drain")
def admin_force_drain(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    """One batch now, schedule untouched."""
    return service.force_drain_now().to_dict()


@router.post("/cancel-refill")
def admin_cancel_refill(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return {"cancelled": service.cancel_next_refill()}


@router.post("/cancel-drain")
def admin_cancel_drain(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return {"cancelled": service.cancel_next_drain()}


@router.get("/buffer")
def admin_buffer_status(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_buffer_status()


@router.get("/buffer/contents")
def admin_buffer_contents(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    contents = service.buffer.get_buffer_contents()
    return {"contents": contents, "count": len(contents)}


@router.post("/buffer")
def admin_buffer_enqueue(
    symbols: List[str] = Body(..., embed=True),
    service: StockOptionsService = Depends(get_service),
) -> Dict[str, Any]:
    """Queue symbols by hand. Unregistered tickers are accepted; the drain reports them as not registered."""
    added = service.buffer.enqueue_many(symbols)
    drain_scheduled = service.scheduler.ensure_drain_scheduled() if added else False
    return {"added": added, "drain_scheduled": drain_scheduled, "buffer": service.buffer.get_buffer()}


@router.delete("/buffer")
def admin_buffer_clear(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    service.buffer.clear()
    return {"cleared": True}


# ---------------------------------------------------------------------------
# Schedule / settings
# ---------------------------------------------------------------------------


@router.get("/schedule")
def admin_schedule_status(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_schedule_status()


@router.put("/schedule")
def admin_update_schedule(
    schedule: str = Body(..., embed=True),
    service: StockOptionsService = Depends(get_service),
) -> Dict[str, Any]:
    value = service.scheduler.update_schedule(schedule)
    return {"schedule": value, "status": service.get_schedule_status()}


@router.put("/batch-size")
def admin_set_batch_size(
    batch_size: int = Body(..., embed=True),
    service: StockOptionsService = Depends(get_service),
) -> Dict[str, Any]:
    return {"batch_size": service.scheduler.set_batch_size(batch_size)}


@router.get("/cron/logs")
def admin_cron_logs(
    limit: int = Query(10, ge=1, le=100),
    service: StockOptionsService = Depends(get_service),
) -> Dict[str, Any]:
    return {"logs": service.scheduler.get_recent_logs(limit)}


@router.delete("/cron/logs")
def admin_clear_cron_logs(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    service.scheduler.clear_logs()
    return {"cleared": True}


@router.post("/cron/test")
def admin_cron_test(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.scheduler.test_cron_functionality()


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


@router.post("/cleanup")
def admin_run_cleanup(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.scheduler.cleanup_old_options()


@router.get("/cleanup/statistics")
def admin_cleanup_statistics(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.collector.statistics()


@router.post("/cleanup/date-range")
def admin_cleanup_date_range(
    start_date: str = Body(..., embed=True),
    end_date: str = Body(..., embed=True),
    service: StockOptionsService = Depends(get_service),
) -> Dict[str, Any]:
    """Delete strikes expiring in [start_date, end_date] across all symbols."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None:
        raise InvalidParameterError("start_date", f"Invalid start_date {start_date!r}")
    if end is None:
        raise InvalidParameterError("end_date", f"Invalid end_date {end_date!r}")
    if start > end:
        raise InvalidParameterError("date_range", "Start date is after end date")
    return service.collector.clean_by_date_range(start, end)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@router.get("/test-connectivity")
def admin_test_connectivity(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.client.test_connectivity()


@router.post("/test")
def admin_test_functionality(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.test_functionality()


@router.get("/status")
def admin_status(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_status()


@router.get("/info")
def admin_info(service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    return service.get_info()


__all__ = ["router"]

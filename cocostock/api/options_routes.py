# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
Read API: /api/v1/options/* and the synchronous sync trigger.

GET /api/v1/options/{symbol}
  no date            -> every stored record {record_key: {strike_key: quote}}
  date               -> the call and put records of that expiration (404 no_options_found when empty)
  date + strike      -> one StrikeQuote, calls first then puts unless type is given (404 option_not_found)
  date + strike + field -> that single value (400 field_not_found when the quote lacks it)
  exclude_bid_0      -> drop strikes whose bid is exactly 0
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from cocostock.api.deps import get_service, require_admin_key
from cocostock.api.options_data_helper import (
    filter_by_type,
    filter_options_by_bid,
    filter_record_by_bid,
    get_valid_option_fields,
)
from cocostock.api.validators import (
    validate_date,
    validate_exclude_bid_0,
    validate_field,
    validate_option_type,
    validate_strike,
    validate_symbol,
)
from cocostock.core.errors import InvalidParameterError, LookupFailedError, NotRegisteredError
from cocostock.service import StockOptionsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["options"])


def _registered(service: StockOptionsService, symbol: str) -> str:
    ticker = validate_symbol(symbol)
    if not service.registry.symbol_exists(ticker):
        raise NotRegisteredError(ticker)
    return ticker


@router.get("/options/{symbol}")
def api_get_options(
    symbol: str,
    date: Optional[str] = Query(None, description="Expiration YYMMDD"),
    strike: Optional[str] = Query(None, description="Positive strike price, e.g. 110 or 182.5"),
    type: Optional[str] = Query(None, description="put or call"),
    field: Optional[str] = Query(None, description="Single StrikeQuote field to return"),
    exclude_bid_0: Optional[str] = Query(None, description="true/false/1/0"),
    service: StockOptionsService = Depends(get_service),
) -> Any:
    ticker = validate_symbol(symbol)
    expiration = validate_date(date)
    strike_key = validate_strike(strike)
    option_type = validate_option_type(type)
    field_name = validate_field(field)
    exclude = validate_exclude_bid_0(exclude_bid_0)

    if not service.registry.symbol_exists(ticker):
        raise NotRegisteredError(ticker)
    if strike_key is not None and expiration is None:
        raise InvalidParameterError("date", "The date parameter is required when strike is given", code="missing_date")

    if expiration is None:
        records = filter_by_type(service.options.get_all_records(ticker), option_type)
        return filter_options_by_bid(records) if exclude else records

    if strike_key is None:
        records = filter_by_type(service.options.get_records_for_date(ticker, expiration), option_type)
        if exclude:
            records = filter_options_by_bid(records)
        if not records:
            raise LookupFailedError("no_options_found", f"No options found for date {expiration}", symbol=ticker)
        return records

    found: Optional[Dict[str, Any]] = None
    for opt_type in ([option_type] if option_type else ["C", "P"]):
        quote = service.options.get_strike(ticker, expiration, opt_type, strike_key)
        if quote is None:
            continue
        if exclude and not filter_record_by_bid({strike_key: quote}):
            continue
        found = quote
        break
    if found is None:
        raise LookupFailedError(
            "option_not_found",
            f"Option not found for date {expiration} and strike {strike}",
            symbol=ticker,
        )
    if field_name is not None:
        if field_name not in found:
            raise InvalidParameterError(
                "field", f"Field {field_name} not found in option data", code="field_not_found"
            )
        return found[field_name]
    return found


@router.get("/options/{symbol}/latest")
def api_get_latest(symbol: str, service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    """The most recently updated StrikeQuote for symbol."""
    ticker = _registered(service, symbol)
    quote = service.options.latest(ticker)
    if quote is None:
        raise LookupFailedError("no_options_found", f"No options stored for {ticker}", symbol=ticker)
    return {"symbol": ticker, "data": quote}


@router.get("/options/{symbol}/status")
def api_get_status(symbol: str, service: StockOptionsService = Depends(get_service)) -> Dict[str, Any]:
    ticker = validate_symbol(symbol)
    out: Dict[str, Any] = {"symbol": ticker}
    out.update(service.coordinator.get_sync_status(ticker))
    return out


@router.post("/sync/{symbol}", dependencies=[Depends(require_admin_key)])
def api_sync_symbol(symbol: str, service: StockOptionsService = Depends(get_service)) -> JSONResponse:
    """Synchronous sync of one registered symbol: 200 on success, 422 when nothing could be stored."""
    ticker = _registered(service, symbol)
    result = service.sync_symbol(ticker)
    logger.info("[API] sync symbol=%s success=%s processed=%d", ticker, result.success, result.processed)
    return JSONResponse(status_code=200 if result.success else 422, content=result.to_dict())


@router.get("/docs")
def api_docs() -> Dict[str, Any]:
    """Endpoint documentation payload."""
    return {
        "endpoints": {
            "GET /api/v1/options/{symbol}": {
                "description": "Stored option records for a registered symbol",
                "parameters": {
                    "symbol": "Stock ticker, letters only (required)",
                    "date": "Expiration date YYMMDD (optional)",
                    "strike": "Positive strike price, stored as an 8-digit key of price x 100; requires date (optional)",
                    "type": "put or call; restricts records and strike lookups (optional)",
                    "field": "Return a single StrikeQuote field; requires date and strike (optional)",
                    "exclude_bid_0": "true/false/1/0; drop strikes whose bid is 0 (optional)",
                },
                "examples": [
                    "/api/v1/options/LMT",
                    "/api/v1/options/LMT?date=250815",
                    "/api/v1/options/BXMT?date=250815&strike=110",
                    "/api/v1/options/BXMT?date=250815&strike=110&field=bid",
                    "/api/v1/options/LMT?exclude_bid_0=true",
                ],
            },
            "GET /api/v1/options/{symbol}/latest": {"description": "Most recently updated strike quote"},
            "GET /api/v1/options/{symbol}/status": {"description": "exists, last_sync and options_count"},
            "POST /api/v1/sync/{symbol}": {
                "description": "Fetch and store the chain now (requires x-api-key when configured)",
                "responses": {"200": "synced", "404": "symbol not registered", "422": "sync failed"},
            },
        },
        "valid_fields": get_valid_option_fields(),
        "error_format": {"code": "machine_readable_code", "message": "Human message", "data": {"status": 400}},
    }


__all__ = ["router"]

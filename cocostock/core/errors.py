# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""
Error taxonomy for the sync pipeline.

Upstream (abort one symbol's sync):
  - TransportError: network unreachable / timeout
  - UpstreamStatusError: non-200 HTTP status
  - DecodeError: body is not JSON
  - ValidationError: JSON without the expected data.options shape
  - NotRegisteredError: symbol unknown to the registry

Per record (recovered locally, counted in SyncResult.errors):
  - RecordParseError: vendor option code does not match, or mandatory fields missing
  - StorageError: persistence read/write failure

Every error carries a machine-readable `code` used by the HTTP layer.
"""

from __future__ import annotations

from typing import Optional


class CocoStockError(Exception):
    """Base error. `code` is stable and machine-readable; `http_status` is the API mapping."""

    code = "cocostock_error"
    http_status = 500

    def __init__(self, message: str, symbol: str = "") -> None:
        self.symbol = (symbol or "").upper()
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": {"status": self.http_status}}


# ---------------------------------------------------------------------------
# Market data (CBOE)
# ---------------------------------------------------------------------------


class MarketDataError(CocoStockError):
    """Raised when the CBOE fetch fails. Optional http_status and response snippet for diagnostics."""

    code = "cboe_error"
    http_status = 502

    def __init__(
        self,
        message: str,
        symbol: str = "",
        http_status: Optional[int] = None,
        response_snippet: str = "",
    ) -> None:
        self.upstream_status = http_status
        self.response_snippet = (response_snippet or "")[:500]
        super().__init__(message, symbol=symbol)


class TransportError(MarketDataError):
    code = "cboe_transport_error"


class UpstreamStatusError(MarketDataError):
    code = "cboe_api_error"

    def __init__(self, status_code: int, symbol: str = "", response_snippet: str = "") -> None:
        self.status_code = status_code
        super().__init__(
            f"CBOE API returned status code {status_code}",
            symbol=symbol,
            http_status=status_code,
            response_snippet=response_snippet,
        )


class DecodeError(MarketDataError):
    code = "cboe_json_error"


class ValidationError(CocoStockError):
    """Structurally valid input that does not have the expected shape or value."""

    code = "invalid_response"
    http_status = 400


# ---------------------------------------------------------------------------
# Records and storage
# ---------------------------------------------------------------------------


class RecordParseError(CocoStockError):
    code = "record_parse_error"
    http_status = 422

    def __init__(self, message: str, option_code: str = "", symbol: str = "") -> None:
        self.option_code = option_code or ""
        super().__init__(message, symbol=symbol)


class StorageError(CocoStockError):
    code = "storage_error"
    http_status = 500


# ---------------------------------------------------------------------------
# Symbols / admin
# ---------------------------------------------------------------------------


class NotRegisteredError(CocoStockError):
    code = "stock_not_found"
    http_status = 404

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Stock {symbol.upper()} not registered", symbol=symbol)


class InvalidSymbolError(ValidationError):
    code = "invalid_symbol"

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Invalid stock symbol: {symbol!r} (letters only)", symbol=symbol)


class DuplicateSymbolError(CocoStockError):
    code = "stock_exists"
    http_status = 409

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Stock {symbol.upper()} already exists", symbol=symbol)


class SymbolNotFoundUpstreamError(CocoStockError):
    code = "stock_not_in_cboe"
    http_status = 404

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Stock {symbol.upper()} not found in CBOE API", symbol=symbol)


class ConfigError(ValidationError):
    code = "invalid_config"


class InvalidParameterError(ValidationError):
    """Rejected request parameter. code defaults to invalid_<param>."""

    def __init__(self, param: str, message: str, code: Optional[str] = None) -> None:
        self.param = param
        self.code = code or f"invalid_{param}"
        super().__init__(message)


class LookupFailedError(CocoStockError):
    """Read API: nothing stored for the requested symbol/date/strike."""

    http_status = 404

    def __init__(self, code: str, message: str, symbol: str = "") -> None:
        self.code = code
        super().__init__(message, symbol=symbol)


class UnauthorizedError(CocoStockError):
    code = "rest_forbidden"
    http_status = 401

    def __init__(self, message: str = "Missing or invalid x-api-key") -> None:
        super().__init__(message)


__all__ = [
    "CocoStockError",
    "MarketDataError",
    "TransportError",
    "UpstreamStatusError",
    "DecodeError",
    "ValidationError",
    "RecordParseError",
    "StorageError",
    "NotRegisteredError",
    "InvalidSymbolError",
    "DuplicateSymbolError",
    "SymbolNotFoundUpstreamError",
    "ConfigError",
    "InvalidParameterError",
    "LookupFailedError",
    "UnauthorizedError",
]

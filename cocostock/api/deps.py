# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""Request-scoped dependencies shared by the routers: the service instance and the admin key check."""

from __future__ import annotations

import logging
import threading

from fastapi import Header, Request

from cocostock.core.errors import UnauthorizedError
from cocostock.service import StockOptionsService, build_service

logger = logging.getLogger(__name__)

_build_lock = threading.Lock()


def get_service(request: Request) -> StockOptionsService:
    """The app's StockOptionsService. Built on first use when the lifespan did not run (e.g. bare TestClient)."""
    service = getattr(request.app.state, "service", None)
    if service is not None:
        return service
    with _build_lock:
        service = getattr(request.app.state, "service", None)
        if service is None:
            service = build_service()
            request.app.state.service = service
            logger.info("[API] service built lazily db=%s", service.store.db_path)
    return service


def require_admin_key(request: Request, x_api_key: str | None = Header(None, alias="x-api-key")) -> None:
    """If an admin key is configured, require x-api-key. Otherwise allow (local dev)."""
    expected = get_service(request).config.api.admin_api_key
    if not expected:
        return
    if (x_api_key or "").strip() != expected:
        logger.warning("[API] rejected admin request path=%s", request.url.path)
        raise UnauthorizedError()


__all__ = ["get_service", "require_admin_key"]

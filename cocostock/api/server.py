# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""FastAPI server: read API, sync trigger and admin surface over one StockOptionsService."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv


# Load .env before config is read so COCOSTOCK_* / CBOE_* overrides apply under uvicorn too
def _load_env() -> None:
    # 1) Repo root .env: primary; override so file wins over empty shell vars
    env_file = Path(__file__).resolve().parents[2] / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=True)
    # 2) Current working directory .env
    load_dotenv()


_load_env()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cocostock import __version__
from cocostock.api.admin_routes import router as admin_router
from cocostock.api.options_routes import router as options_router
from cocostock.core.errors import CocoStockError
from cocostock.service import StockOptionsService, build_service

logger = logging.getLogger(__name__)


def _error_body(code: str, message: str, status: int) -> Dict[str, Any]:
    return {"code": code, "message": message, "data": {"status": status}}


async def _handle_cocostock_error(request: Request, exc: CocoStockError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("[API] %s %s failed code=%s: %s", request.method, request.url.path, exc.code, exc)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("query", "body", "path"))
        parts.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else str(err.get("msg", "invalid")))
    return JSONResponse(status_code=400, content=_error_body("rest_invalid_param", "; ".join(parts) or "Invalid request", 400))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[API] unhandled error %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("internal_error", "Internal server error", 500))


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup: build the service, clear a stale processing flag, install triggers and start the timer thread."""
    service: Optional[StockOptionsService] = getattr(app.state, "service", None)
    if service is None:
        service = build_service()
        app.state.service = service
    run_scheduler = app.state.start_scheduler
    if run_scheduler is None:
        run_scheduler = service.config.scheduler.enabled
    logger.info(
        "[API] startup db=%s cboe=%s scheduler=%s admin_key=%s",
        service.store.db_path,
        service.config.cboe.base_url,
        run_scheduler,
        "configured" if service.config.api.admin_api_key else "open",
    )
    if run_scheduler:
        service.start()
    yield
    if run_scheduler:
        service.stop()
    logger.info("[API] shutdown")


def create_app(service: Optional[StockOptionsService] = None, start_scheduler: Optional[bool] = None) -> FastAPI:
    """
    Build the FastAPI app.

    service: use this graph instead of building one from config (tests inject theirs).
    start_scheduler: None follows config.scheduler.enabled.
    """
    app = FastAPI(title="Coco Stock Options API", version=__version__, lifespan=_lifespan)
    app.state.service = service
    app.state.start_scheduler = start_scheduler

    app.add_exception_handler(CocoStockError, _handle_cocostock_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)

    app.include_router(options_router)
    app.include_router(admin_router)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        """Health check. No auth."""
        return {"ok": True, "status": "healthy", "version": __version__}

    return app


app = create_app()


__all__ = ["app", "create_app"]

# -*- coding: utf-8 -*-
"""
NutriVision API

Health, auth and meal history endpoints. Every JSON response is an envelope
`{success, data?, error?, message?}`.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .app_db import DatabaseStatus
from .auth.api import router as auth_router
from .auth.storage import make_user_storage
from .config import Settings, settings as default_settings
from .meals.api import router as meals_router
from .meals.storage import make_meal_storage

log = logging.getLogger(__name__)


def _error_envelope(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def create_app(database: DatabaseStatus, cfg: Optional[Settings] = None) -> FastAPI:
    cfg = cfg or default_settings
    app = FastAPI(
        title="NutriVision API",
        description="Food logging backend: auth, meal history, health.",
        version="1.0.0",
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Handlers read the degraded-mode flag and storages from app state.
    app.state.database = database
    app.state.users = make_user_storage(database)
    app.state.meals = make_meal_storage(database)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        detail = first.get("msg") or "Invalid request"
        return _error_envelope(400, f"{field}: {detail}" if field else detail)

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        log.error("unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return _error_envelope(500, "Internal server error")

    @app.get("/api/health")
    def health(request: Request) -> dict:
        status: DatabaseStatus = request.app.state.database
        return {
            "status": "OK",
            "message": "NutriVision API is running",
            "database": status.label,
        }

    app.include_router(auth_router)
    app.include_router(meals_router)
    return app

"""
FastAPI application entry point for the cafe backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cafe_backend.config import get_settings
from cafe_backend.errors import CafeError
from cafe_backend.routes import admin_router, pages_router, router

logger = logging.getLogger(__name__)


async def handle_cafe_error(request: Request, exc: CafeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.as_dict())


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Cafe Backend (FastAPI)", version="0.1.0")
    app.add_exception_handler(CafeError, handle_cafe_error)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(admin_router, prefix=settings.api_prefix)
    app.include_router(pages_router)
    return app


app = create_app()

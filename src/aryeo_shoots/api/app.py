"""
FastAPI application factory: services wiring, lifespan, middleware and error mapping.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aryeo_shoots import __version__
from aryeo_shoots.api.logging import RequestLoggingMiddleware, setup_logging
from aryeo_shoots.api.routes import AppServices, router
from aryeo_shoots.cache import ShootCacheManager
from aryeo_shoots.config import Settings
from aryeo_shoots.connectors.aryeo import AryeoConnector
from aryeo_shoots.connectors.base import BaseConnector
from aryeo_shoots.errors import ShootsError
from aryeo_shoots.store.pipeline_log import PipelineLog

logger = logging.getLogger(__name__)


def build_services(
    settings: Settings,
    connector: Optional[BaseConnector] = None,
) -> AppServices:
    connector = connector or AryeoConnector.from_settings(settings)
    return AppServices(
        settings=settings,
        connector=connector,
        shoot_cache=ShootCacheManager.from_settings(settings, connector),
        pipeline_log=PipelineLog(settings.pipeline_log_path),
    )


async def shoots_error_handler(request: Request, exc: ShootsError):
    return JSONResponse(status_code=exc.http_status, content={"error": str(exc)})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Bad query params become a 400 naming the first offending field."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
        message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    # Runs in ServerErrorMiddleware, outside CORSMiddleware.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) or "Unexpected server error"},
        headers={"Access-Control-Allow-Origin": "*"},
    )


def create_app(
    settings: Optional[Settings] = None,
    connector: Optional[BaseConnector] = None,
) -> FastAPI:
    """Build the API. Tests pass their own settings and a connector on a mock transport."""
    settings = settings or Settings()
    services = build_services(settings, connector)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        if not settings.has_token:
            logger.warning(
                "ARYEO_API_TOKEN is not set. API routes that call Aryeo will fail "
                "until a token is provided."
            )
        if services.shoot_cache.load_snapshot():
            cache = services.shoot_cache.cache
            logger.info(
                "Loaded shoots cache from disk (%d records, updated %s).",
                len(cache.shoots),
                cache.updated_at.isoformat() if cache.updated_at else "never",
            )
        logger.info("Aryeo shoots API ready (api_base=%s)", settings.ARYEO_API_BASE)

        yield

        await services.shoot_cache.aclose()
        await services.connector.aclose()

    app = FastAPI(
        title="Aryeo Shoots",
        description="Cached, normalized Aryeo shoots and webhook lead pipeline",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "x-webhook-secret"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(router)

    app.add_exception_handler(ShootsError, shoots_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    return app

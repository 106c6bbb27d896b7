"""
FastAPI application entry point for the URL Monitor runtime.

Responsibilities:
- create the FastAPI app (create_app) with CORS and error handlers
- construct shared singletons (LogService, FetchProxy, NotificationDispatcher,
  NotificationProbe) from settings unless they are passed in
- include the change-log and proxy routes under /api

Start it with, e.g.:

    uvicorn runtime.api.server:app --reload
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from configs.settings import settings
from core.api.fetch_proxy import FetchProxy
from core.notify.dispatcher import NotificationDispatcher, NotificationProbe
from core.notify.registry import default_registry
from exceptions.exceptions import (
    ChangeValidationError,
    LogStoreError,
    UnknownProviderError,
)
from runtime.models.api_models import ErrorResponse
from runtime.services.log_service import LogService
from runtime.store.log_store import LogStore
from . import log_routes, proxy_routes


logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


def create_app(
    log_service: Optional[LogService] = None,
    fetch_proxy: Optional[FetchProxy] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    probe: Optional[NotificationProbe] = None,
) -> FastAPI:
    """Build the app. Anything not passed in is built from settings."""

    # -----------------------------------------------------------------------
    # Shared singletons
    # -----------------------------------------------------------------------

    # Change log: one JSONL file, path from URL_MONITOR_LOG_FILE.
    if log_service is None:
        log_service = LogService(
            LogStore(settings.log_file, fsync=settings.fsync),
            default_window_days=settings.retention_days,
        )

    if fetch_proxy is None:
        fetch_proxy = FetchProxy(timeout=settings.fetch_timeout, user_agent=settings.user_agent)

    # Dispatcher and probe share one provider registry.
    if dispatcher is None or probe is None:
        registry = default_registry()
        dispatcher = dispatcher or NotificationDispatcher(registry)
        probe = probe or NotificationProbe(registry)

    # -----------------------------------------------------------------------
    # FastAPI app + route registration
    # -----------------------------------------------------------------------

    app = FastAPI(title="URL Monitor Runtime")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(ChangeValidationError)
    async def _validation_error(request: Request, exc: ChangeValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(UnknownProviderError)
    async def _unknown_provider(request: Request, exc: UnknownProviderError) -> JSONResponse:
        logger.warning("[NOTIFY] Unknown provider %r requested on %s", exc.provider, request.url.path)
        return _error(400, str(exc))

    @app.exception_handler(LogStoreError)
    async def _store_error(request: Request, exc: LogStoreError) -> JSONResponse:
        return _error(500, str(exc))

    @app.get("/healthz")
    def health_check():
        """
        Simple health check endpoint for uptime monitoring.
        """
        return {"status": "ok"}

    # Initialize the router modules with our shared objects, then include them.
    log_routes.init_routes(log_service=log_service)
    proxy_routes.init_routes(fetch_proxy=fetch_proxy, dispatcher=dispatcher, probe=probe)
    app.include_router(log_routes.router, prefix="/api")
    app.include_router(proxy_routes.router, prefix="/api")

    app.state.log_service = log_service
    return app


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()

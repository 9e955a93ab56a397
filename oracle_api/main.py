# oracle_api/main.py
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oracle_api.api import health, oracle
from oracle_api.api.dependencies import lifespan
from oracle_api.api.static import mount_client_bundle
from oracle_api.config.base import AppSettings, get_settings
from oracle_api.middleware.error_handler import ErrorHandlerMiddleware
from oracle_api.middleware.request_logging import RequestLoggingMiddleware


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Build the FastAPI application for the given settings (defaults to the environment)."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan  # Manages startup/shutdown events
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    # Last added runs first: CORS -> request log -> error envelope -> routes
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(oracle.router)
    app.include_router(health.router)

    # Must come last: the client bundle catches every remaining GET path
    if settings.is_production:
        mount_client_bundle(app, settings.STATIC_DIR)

    return app

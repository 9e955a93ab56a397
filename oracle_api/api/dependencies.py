# oracle_api/api/dependencies.py
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, Request

from oracle_api.config.base import AppSettings, get_settings
from oracle_api.connectors.feed_client import FeedClient
from oracle_api.connectors.rpc_provider import JsonRpcProvider
from oracle_api.services.oracle_adapter import OracleReadingAdapter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    """Application startup/shutdown lifecycle manager."""
    settings: AppSettings = app.state.settings
    try:
        logger.info("Starting application...")
        app.state.http_client = httpx.AsyncClient(timeout=settings.RPC_TIMEOUT_SECONDS)
        logger.info("Application startup complete.", extra={"rpc_url": settings.RPC_URL})
        yield
    except Exception as e:
        logger.error(f"Error during startup: {e}")
        raise
    finally:
        logger.info("Shutting down application...")
        client = getattr(app.state, "http_client", None)
        if client is not None:
            try:
                await client.aclose()
            except Exception as e:
                logger.error(f"Error closing HTTP client: {e}")
            app.state.http_client = None
        logger.info("Application shutdown complete.")


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared HTTP client created by the lifespan."""
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise RuntimeError("HTTP client not initialized. Make sure the app has started properly.")
    return client


def get_feed_client(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: AppSettings = Depends(get_settings),
) -> FeedClient:
    """Feed client for the configured contract - built per request over the shared HTTP client."""
    provider = JsonRpcProvider(settings.RPC_URL, client)
    return FeedClient(provider, settings.FEED_ADDRESS)


def get_oracle_adapter(feed_client: FeedClient = Depends(get_feed_client)) -> OracleReadingAdapter:
    return OracleReadingAdapter(feed_client)

"""
Google Meet OAuth token service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from config.settings import Settings, config
from connectors.factory import create_google_meet_integration
from connectors.routes import router as google_meet_router
from database.session import create_engine_and_factory, init_models

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("httpcore", "httpx", "aiosqlite"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the app and wire the integration.

    Raises ``ConfigurationError`` immediately if the Google client or the
    encryption key is not configured.
    """
    settings = settings or config
    configure_logging(settings.debug)
    oauth_config = settings.google_oauth_config()
    engine, session_factory = create_engine_and_factory(settings.database_url, echo=settings.debug)

    app = FastAPI(
        title="Google Meet OAuth Service",
        version="1.0.0",
        description="OAuth token lifecycle for the Google Meet integration.",
    )
    app.state.google_meet = create_google_meet_integration(
        oauth_config,
        session_factory,
        transport=transport,
    )
    app.state.frontend_origin = settings.frontend_origin or None
    app.include_router(google_meet_router, prefix="/api/v1/google-meet")

    @app.on_event("startup")
    async def on_startup():
        await init_models(engine)
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()

    return app


if __name__ == "__main__":
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )

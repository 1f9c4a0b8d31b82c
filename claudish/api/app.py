"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from claudish import __version__
from claudish.config.settings import Settings
from claudish.core.logging import get_logger, setup_logging
from claudish.gateway import Gateway
from claudish.services.container import ServiceContainer

from .errors import setup_error_handlers
from .routes import health_router, messages_router


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service container on startup and close it on shutdown."""
    settings: Settings = app.state.settings
    container = ServiceContainer(settings)
    app.state.service_container = container
    app.state.gateway = Gateway(container)
    logger.info(
        "server_start",
        host=settings.server.host,
        port=settings.server.port,
        default_provider=settings.providers.default_provider,
    )
    try:
        yield
    finally:
        await container.close()
        logger.info("server_stop")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override. If None, loads from the environment.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = Settings()

    if not structlog.is_configured():
        setup_logging(
            json_logs=settings.logging.json_logs,
            log_level_name=settings.logging.level,
        )

    app = FastAPI(
        title="claudish",
        description="Anthropic Messages API in front of many model providers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_error_handlers(app)
    app.include_router(health_router)
    app.include_router(messages_router)
    return app

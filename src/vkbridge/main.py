import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from vkbridge import __version__
from vkbridge.api.middleware import RequestCorrelationMiddleware
from vkbridge.api.router import api_router
from vkbridge.core.config import LOCAL_ENVIRONMENTS, get_settings
from vkbridge.core.logging import configure_logging
from vkbridge.runtime import BotRuntime, NoOpBotRuntime
from vkbridge.vk.client import VkApiClient

logger = logging.getLogger(__name__)


def create_app(
    *,
    runtime: BotRuntime | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)
    is_local_environment = settings.environment.strip().lower() in LOCAL_ENVIRONMENTS

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and clean up application resources."""
        app.state.settings = settings
        app.state.runtime = runtime if runtime is not None else NoOpBotRuntime()
        app.state.vk_client = VkApiClient(settings, http_client=http_client)
        if not settings.is_configured:
            logger.warning("VK_ACCESS_TOKEN is not configured; replies cannot be sent")
        yield
        client = app.state.vk_client
        app.state.vk_client = None
        try:
            await client.aclose()
        except (RuntimeError, OSError, httpx.HTTPError):
            logger.exception("Failed to close VK API client")

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if is_local_environment else None,
        redoc_url="/redoc" if is_local_environment else None,
        openapi_url="/openapi.json" if is_local_environment else None,
    )
    app.add_middleware(RequestCorrelationMiddleware)
    app.include_router(api_router)

    @app.get("/", tags=["meta"])
    def root() -> dict[str, str]:
        """Return basic service metadata."""
        payload = {
            "name": settings.app_name,
            "status": "ok",
        }
        if is_local_environment:
            payload["environment"] = settings.environment
        return payload

    return app


app = create_app()

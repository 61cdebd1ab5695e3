"""Shared FastAPI dependencies."""

from fastapi import Request

from vkbridge.core.config import Settings, get_settings
from vkbridge.runtime import BotRuntime, NoOpBotRuntime
from vkbridge.vk.client import VkApiClient


def get_app_settings(request: Request) -> Settings:
    """Return settings bound at startup, falling back to the environment."""
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = get_settings()
    return settings


def get_vk_client(request: Request) -> VkApiClient:
    """Return the initialized VK API client from app state."""
    client: VkApiClient | None = getattr(request.app.state, "vk_client", None)
    if client is None:
        raise RuntimeError("VK API client is not initialized")
    return client


def get_runtime(request: Request) -> BotRuntime:
    """Return the bot runtime bound to the application."""
    runtime: BotRuntime | None = getattr(request.app.state, "runtime", None)
    if runtime is None:
        return NoOpBotRuntime()
    return runtime

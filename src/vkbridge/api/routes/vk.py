"""VK Callback API webhook route."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from vkbridge.api.dependencies import get_app_settings, get_runtime, get_vk_client
from vkbridge.api.responses import webhook_misconfigured_response
from vkbridge.api.schemas import ErrorResponse
from vkbridge.core.config import Settings
from vkbridge.runtime import BotRuntime
from vkbridge.vk.client import VkApiClient
from vkbridge.vk.dispatch import process_webhook
from vkbridge.vk.driver import VkDriver

router = APIRouter(prefix="/vk", tags=["vk"])
logger = logging.getLogger(__name__)

AppSettings = Annotated[Settings, Depends(get_app_settings)]
VkClient = Annotated[VkApiClient, Depends(get_vk_client)]
Runtime = Annotated[BotRuntime, Depends(get_runtime)]


@router.post(
    "/webhook",
    response_class=PlainTextResponse,
    response_model=None,
    responses={503: {"model": ErrorResponse}},
)
async def vk_webhook(
    request: Request,
    settings: AppSettings,
    client: VkClient,
    runtime: Runtime,
) -> PlainTextResponse | JSONResponse:
    """Process one VK callback; the body is the handshake token, ``ok`` or empty."""
    if settings.secret_key is None:
        if not settings.allow_insecure_vk_webhook:
            return webhook_misconfigured_response()
        logger.warning(
            "VK_SECRET_KEY is not configured; /vk/webhook is explicitly running "
            "without authentication because ALLOW_INSECURE_VK_WEBHOOK=true"
        )

    body = await request.body()
    driver = VkDriver.from_request(
        body,
        settings=settings,
        client=client,
        query_params=dict(request.query_params),
    )
    response_body = await process_webhook(driver, runtime)
    return PlainTextResponse(response_body)

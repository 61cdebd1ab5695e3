"""Webhook dispatch from a classified callback into the bot runtime."""

from __future__ import annotations

import inspect
import logging

from vkbridge.core.observability import log_event
from vkbridge.core.request_context import bind_callback, reset_callback
from vkbridge.runtime import BotRuntime
from vkbridge.vk.driver import VkDriver
from vkbridge.vk.events import Confirmation, GenericEvent, Unmatched, UserMessage

logger = logging.getLogger(__name__)


async def _call(result: object) -> None:
    if inspect.isawaitable(result):
        await result


async def process_webhook(driver: VkDriver, runtime: BotRuntime) -> str:
    """Handle one callback and return the response body to send back to VK.

    The handshake short-circuits everything else. Any other authentic
    callback is acknowledged before the runtime sees it, so a runtime
    failure cannot make VK redeliver the event.
    """
    token = bind_callback(driver.event_type, driver.event.get("group_id"))
    try:
        return await _dispatch(driver, runtime)
    finally:
        reset_callback(token)


async def _dispatch(driver: VkDriver, runtime: BotRuntime) -> str:
    classified = driver.classify()

    if isinstance(classified, Confirmation):
        driver.verify_request()
        log_event(
            logger,
            event="vk.webhook.confirmation",
            group_id=driver.event.get("group_id"),
            answered=driver.context.confirmation_sent,
        )
        return driver.context.response_body

    if not driver.matches_request():
        reason = classified.reason if isinstance(classified, Unmatched) else "not an envelope"
        log_event(
            logger,
            event="vk.webhook.rejected",
            level=logging.WARNING,
            type=driver.event_type,
            reason=reason,
        )
        return driver.context.response_body

    try:
        if isinstance(classified, GenericEvent):
            log_event(logger, event="vk.webhook.generic_event", name=classified.name)
            await _call(runtime.handle_event(classified, driver))
        elif isinstance(classified, UserMessage):
            for message in driver.get_messages():
                log_event(
                    logger,
                    event="vk.webhook.message",
                    sender=message.sender,
                    peer_id=message.recipient,
                )
                await _call(runtime.handle_message(message, driver))
        else:
            log_event(
                logger,
                event="vk.webhook.ignored",
                type=driver.event_type,
                reason=classified.reason,
            )
    except Exception:
        logger.exception("Bot runtime failed while handling VK %s callback", driver.event_type)

    log_event(
        logger,
        event="vk.webhook.ack",
        type=driver.event_type,
        acknowledged=driver.context.ack_sent,
    )
    return driver.context.response_body

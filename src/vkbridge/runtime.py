"""Bot runtime contract and the bundled reference runtimes."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Protocol

from vkbridge.core.observability import log_event
from vkbridge.vk.events import GenericEvent
from vkbridge.vk.messages import IncomingMessage
from vkbridge.vk.outgoing import OutgoingMessage

if TYPE_CHECKING:
    from vkbridge.vk.driver import VkDriver

logger = logging.getLogger(__name__)


class BotRuntime(Protocol):
    """Host runtime that owns routing and conversation state."""

    def handle_event(self, event: GenericEvent, driver: "VkDriver") -> None | Awaitable[None]:
        """React to an administrative chat or community event."""

    def handle_message(
        self,
        message: IncomingMessage,
        driver: "VkDriver",
    ) -> None | Awaitable[None]:
        """React to a user message; replies go through the driver."""


class NoOpBotRuntime:
    """Default runtime that only logs what it receives."""

    def handle_event(self, event: GenericEvent, driver: "VkDriver") -> None:
        _ = driver
        log_event(logger, event="runtime.noop.event", level=logging.DEBUG, name=event.name)

    def handle_message(self, message: IncomingMessage, driver: "VkDriver") -> None:
        _ = driver
        log_event(
            logger,
            event="runtime.noop.message",
            level=logging.DEBUG,
            sender=message.sender,
            peer_id=message.recipient,
        )


class EchoBotRuntime:
    """Replies to every message with its own text."""

    def handle_event(self, event: GenericEvent, driver: "VkDriver") -> None:
        _ = (event, driver)

    async def handle_message(self, message: IncomingMessage, driver: "VkDriver") -> None:
        payload = driver.build_service_payload(OutgoingMessage(message.text), message)
        await driver.send_payload(payload)

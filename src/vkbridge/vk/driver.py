"""Per-request facade that the bot runtime talks to."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from vkbridge.core.config import Settings
from vkbridge.core.observability import log_event
from vkbridge.vk.client import VkApiClient, VkUser
from vkbridge.vk.context import WebhookContext
from vkbridge.vk.events import (
    CONFIRMATION_EVENT,
    ClassifiedEvent,
    Confirmation,
    GenericEvent,
    Unmatched,
    UserMessage,
    classify_request,
    is_envelope,
    parse_inbound,
    verify_secret,
)
from vkbridge.vk.exceptions import AuthenticationFailure, MalformedPayloadError, VkAdapterError
from vkbridge.vk.messages import Answer, IncomingMessage, conversation_answer, normalize_message
from vkbridge.vk.outgoing import build_service_payload

logger = logging.getLogger(__name__)


class VkDriver:
    """Wraps one inbound callback together with its response state.

    A driver must not be shared between requests: the classification result,
    normalized messages and the response guards all belong to one call.
    """

    DRIVER_NAME = "vk"

    def __init__(
        self,
        *,
        event: Mapping[str, Any],
        settings: Settings,
        client: VkApiClient | None = None,
        content: bytes | str = b"",
        query_params: Mapping[str, str] | None = None,
        malformed: bool = False,
    ) -> None:
        self.event: dict[str, Any] = dict(event)
        self.settings = settings
        self.content = content
        self.query_params: dict[str, str] = dict(query_params or {})
        self.malformed = malformed
        self.context = WebhookContext()
        self._client = client
        self._classified: ClassifiedEvent | None = None
        self._messages: list[IncomingMessage] | None = None

    @classmethod
    def from_request(
        cls,
        body: bytes | str,
        *,
        settings: Settings,
        client: VkApiClient | None = None,
        query_params: Mapping[str, str] | None = None,
    ) -> "VkDriver":
        """Build a driver from a raw callback body; bad JSON becomes an empty event."""
        try:
            event = parse_inbound(body)
            malformed = False
        except MalformedPayloadError as exc:
            log_event(logger, event="vk.webhook.malformed", level=logging.WARNING, error=str(exc))
            event = {}
            malformed = True
        return cls(
            event=event,
            settings=settings,
            client=client,
            content=body,
            query_params=query_params,
            malformed=malformed,
        )

    @property
    def event_type(self) -> str | None:
        value = self.event.get("type")
        return value if isinstance(value, str) else None

    def is_configured(self) -> bool:
        return self.settings.is_configured

    def request_authenticated(self) -> bool:
        """Check the callback secret; insecure mode accepts unsigned callbacks."""
        try:
            verify_secret(
                self.event,
                self.settings.secret_key,
                allow_unsigned=self.settings.allow_insecure_vk_webhook,
            )
        except AuthenticationFailure:
            return False
        return True

    def matches_request(self) -> bool:
        """Return whether this is an authentic callback, acknowledging it if so.

        Confirmation callbacks are never acknowledged with ``ok``; they get the
        handshake token from ``verify_request`` instead.
        """
        matches = is_envelope(self.event) and self.request_authenticated()
        if matches and self.event_type != CONFIRMATION_EVENT:
            self.context.acknowledge()
        return matches

    def classify(self) -> ClassifiedEvent:
        """Classify the callback once; later calls reuse the result."""
        if self._classified is None:
            if self.malformed:
                self._classified = Unmatched("malformed body")
            else:
                self._classified = classify_request(
                    self.event,
                    secret_key=self.settings.secret_key,
                    group_id=self.settings.vk_group_id,
                    allow_unsigned=self.settings.allow_insecure_vk_webhook,
                )
        return self._classified

    def has_matching_event(self) -> GenericEvent | None:
        classified = self.classify()
        return classified if isinstance(classified, GenericEvent) else None

    def verify_request(self) -> str | None:
        """Answer the confirmation handshake, at most once per request."""
        if not isinstance(self.classify(), Confirmation):
            return None
        token = self.settings.vk_confirmation
        if token is None:
            log_event(
                logger,
                event="vk.webhook.confirmation_unconfigured",
                level=logging.WARNING,
                group_id=self.event.get("group_id"),
            )
            return None
        return self.context.respond_confirmation(token)

    def get_messages(self) -> list[IncomingMessage]:
        """Normalized user messages of this callback; empty when there are none."""
        if self._messages is None:
            self._messages = self._load_messages()
        return self._messages

    def _load_messages(self) -> list[IncomingMessage]:
        classified = self.classify()
        if not isinstance(classified, UserMessage):
            return []
        try:
            return [normalize_message(classified.raw_object, self.event)]
        except VkAdapterError as exc:
            log_event(
                logger,
                event="vk.webhook.normalization_failed",
                level=logging.WARNING,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return []

    def get_conversation_answer(self, message: IncomingMessage) -> Answer:
        return conversation_answer(message)

    def build_service_payload(
        self,
        message: Any,
        matching_message: IncomingMessage,
        additional_parameters: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        return build_service_payload(message, matching_message, additional_parameters)

    def _require_client(self) -> VkApiClient:
        if self._client is None:
            raise RuntimeError("VK API client is not initialized")
        return self._client

    async def send_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._require_client().send_payload(payload)

    async def types(self, matching_message: IncomingMessage) -> dict[str, Any]:
        return await self._require_client().types(matching_message)

    async def get_user(self, matching_message: IncomingMessage) -> VkUser:
        return await self._require_client().get_user(matching_message)

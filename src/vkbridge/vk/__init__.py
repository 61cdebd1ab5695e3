"""VK Callback API adapter primitives."""

from vkbridge.vk.driver import VkDriver
from vkbridge.vk.events import (
    GENERIC_EVENTS,
    ClassifiedEvent,
    Confirmation,
    GenericEvent,
    Unmatched,
    UserMessage,
    authenticate,
    classify,
    classify_request,
)
from vkbridge.vk.exceptions import (
    AuthenticationFailure,
    MalformedPayloadError,
    MissingContentError,
    PlatformApiError,
    VkAdapterError,
)
from vkbridge.vk.messages import Answer, IncomingMessage, normalize_message
from vkbridge.vk.outgoing import Button, OutgoingMessage, Question, build_service_payload

__all__ = [
    "GENERIC_EVENTS",
    "Answer",
    "AuthenticationFailure",
    "Button",
    "ClassifiedEvent",
    "Confirmation",
    "GenericEvent",
    "IncomingMessage",
    "MalformedPayloadError",
    "MissingContentError",
    "OutgoingMessage",
    "PlatformApiError",
    "Question",
    "Unmatched",
    "UserMessage",
    "VkAdapterError",
    "VkDriver",
    "authenticate",
    "build_service_payload",
    "classify",
    "classify_request",
    "normalize_message",
]

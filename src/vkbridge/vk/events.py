"""Callback event authentication and classification.

VK multiplexes every callback under one envelope::

    {"type": "...", "group_id": 1, "secret": "...", "object": {...}}

Administrative events show up either as the top-level ``type`` or, for chat
service actions, nested as ``object.action.type`` inside a ``message_new``.
``classify`` resolves that into exactly one variant of ``ClassifiedEvent``.
"""

from __future__ import annotations

import hmac
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from vkbridge.vk.exceptions import AuthenticationFailure, MalformedPayloadError

CONFIRMATION_EVENT = "confirmation"
MESSAGE_NEW_EVENT = "message_new"

GENERIC_EVENTS = frozenset(
    {
        CONFIRMATION_EVENT,
        "chat_create",
        "chat_invite_user",
        "chat_invite_user_by_link",
        "chat_kick_user",
        "chat_photo_remove",
        "chat_photo_update",
        "chat_pin_message",
        "chat_title_update",
        "chat_unpin_message",
        "message_allow",
        "message_deny",
        "message_edit",
        "message_reply",
    }
)


@dataclass(frozen=True)
class Confirmation:
    """Server confirmation handshake for the configured community."""


@dataclass(frozen=True)
class GenericEvent:
    """Administrative notification about chat or community state."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UserMessage:
    """User-authored message awaiting normalization."""

    raw_object: dict[str, Any]


@dataclass(frozen=True)
class Unmatched:
    """Callback the adapter does not process."""

    reason: str = "unrecognized"


ClassifiedEvent = Confirmation | GenericEvent | UserMessage | Unmatched


def authenticate(secret_from_payload: object, configured_secret: str | None) -> bool:
    """Compare the callback secret with the configured one in constant time."""
    if not isinstance(secret_from_payload, str) or configured_secret is None:
        return False
    return hmac.compare_digest(
        secret_from_payload.encode("utf-8"),
        configured_secret.encode("utf-8"),
    )


def verify_secret(
    event: Mapping[str, Any],
    secret_key: str | None,
    *,
    allow_unsigned: bool = False,
) -> None:
    """Raise ``AuthenticationFailure`` unless the callback carries the right secret.

    With ``allow_unsigned`` and no configured secret every callback passes.
    """
    if secret_key is None and allow_unsigned:
        return
    if not authenticate(event.get("secret"), secret_key):
        raise AuthenticationFailure("Callback secret does not match")


def parse_inbound(body: bytes | str) -> dict[str, Any]:
    """Decode a raw callback body into a JSON object."""
    try:
        decoded = json.loads(body) if body else None
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedPayloadError("Callback body is not valid JSON") from exc
    if not isinstance(decoded, dict):
        raise MalformedPayloadError("Callback body must be a JSON object")
    return decoded


def is_envelope(event: Mapping[str, Any]) -> bool:
    """Return whether the body looks like a callback envelope at all."""
    has_shape = event.get("type") is not None or event.get("object") is not None
    return has_shape and event.get("group_id") is not None


def same_group(candidate: object, group_id: str | None) -> bool:
    """Compare group ids that may arrive as ints or strings."""
    if candidate is None or group_id is None:
        return False
    return str(candidate).strip() == str(group_id).strip()


def _chat_action(obj: Mapping[str, Any]) -> Mapping[str, Any] | None:
    action = obj.get("action")
    return action if isinstance(action, Mapping) else None


def classify(event: Mapping[str, Any], *, group_id: str | None) -> ClassifiedEvent:
    """Classify an authenticated callback; the first matching rule wins."""
    event_type = event.get("type")
    obj = event.get("object")

    if event_type == CONFIRMATION_EVENT and same_group(event.get("group_id"), group_id):
        return Confirmation()

    if not isinstance(obj, Mapping):
        return Unmatched("missing object")

    if isinstance(event_type, str) and event_type in GENERIC_EVENTS:
        return GenericEvent(name=event_type, payload=dict(obj))

    action = _chat_action(obj)
    action_type = action.get("type") if action is not None else None
    if isinstance(action_type, str) and action_type in GENERIC_EVENTS:
        payload = {key: value for key, value in action.items() if key != "type"}
        return GenericEvent(name=action_type, payload=payload)

    if event_type == MESSAGE_NEW_EVENT and "action" not in obj:
        return UserMessage(raw_object=dict(obj))

    if event_type is None:
        return Unmatched("missing type")
    return Unmatched(f"unsupported type {event_type}")


def classify_request(
    event: Mapping[str, Any],
    *,
    secret_key: str | None,
    group_id: str | None,
    allow_unsigned: bool = False,
) -> ClassifiedEvent:
    """Authenticate and classify one callback body."""
    try:
        verify_secret(event, secret_key, allow_unsigned=allow_unsigned)
    except AuthenticationFailure:
        return Unmatched("unauthenticated")
    return classify(event, group_id=group_id)

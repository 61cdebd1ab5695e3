"""Normalization of ``message_new`` objects into incoming messages."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from vkbridge.vk.exceptions import MalformedPayloadError, MissingContentError


@dataclass(frozen=True)
class IncomingMessage:
    """Canonical incoming message handed to the bot runtime.

    ``sender`` is the VK ``from_id`` and ``recipient`` the ``peer_id`` of the
    conversation. ``payload`` keeps the whole callback event as received.
    """

    text: str
    sender: int | str
    recipient: int | str
    payload: dict[str, Any] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def conversation_id(self) -> int | str:
        return self.recipient

    @property
    def raw_object(self) -> dict[str, Any]:
        return self.extras.get("object", {})


@dataclass(frozen=True)
class Answer:
    """Reply to a pending question, possibly from a keyboard button."""

    text: str
    value: str | None = None
    interactive_reply: bool = False
    message: IncomingMessage | None = None


def extract_command(obj: Mapping[str, Any]) -> str | None:
    """Return the ``command`` carried by a button payload, if any."""
    raw = obj.get("payload")
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        callback = raw
    else:
        try:
            callback = json.loads(raw)
        except (TypeError, ValueError):
            return None
    if not isinstance(callback, Mapping) or callback.get("command") is None:
        return None
    return str(callback["command"])


def normalize_message(
    raw_object: Mapping[str, Any],
    event: Mapping[str, Any] | None = None,
) -> IncomingMessage:
    """Build an ``IncomingMessage`` from a ``message_new`` object.

    A button command takes precedence over the literal text.
    """
    command = extract_command(raw_object)
    if command is not None:
        text = command
    elif raw_object.get("text") is not None:
        text = str(raw_object["text"])
    else:
        raise MissingContentError("Message has neither a button command nor text")

    sender = raw_object.get("from_id")
    recipient = raw_object.get("peer_id")
    if sender is None or recipient is None:
        raise MalformedPayloadError("Message object is missing from_id or peer_id")

    return IncomingMessage(
        text=text,
        sender=sender,
        recipient=recipient,
        payload=dict(event) if event is not None else {"object": dict(raw_object)},
        extras={"object": dict(raw_object)},
    )


def conversation_answer(message: IncomingMessage) -> Answer:
    """Turn an incoming message into an answer for a pending question."""
    obj = message.raw_object
    command = extract_command(obj)
    if command is not None:
        return Answer(
            text=str(obj.get("text", "")),
            value=command,
            interactive_reply=True,
            message=message,
        )
    return Answer(text=message.text, message=message)

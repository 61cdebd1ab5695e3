"""Outgoing replies and their translation into ``messages.send`` parameters."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

ONE_TIME_MARKER = "onetime"


class HasRecipient(Protocol):
    recipient: int | str


@dataclass
class OutgoingMessage:
    """Plain text reply."""

    text: str


@dataclass
class Button:
    """Keyboard button; ``additional`` carries VK fields such as ``color``."""

    text: str
    value: Any = None
    additional: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.value is None:
            self.value = self.text


@dataclass
class Question:
    """Reply that offers the user a keyboard of buttons."""

    text: str
    buttons: list[Button] = field(default_factory=list)

    def add_button(self, button: Button) -> "Question":
        self.buttons.append(button)
        return self

    def add_buttons(self, buttons: Iterable[Button]) -> "Question":
        self.buttons.extend(buttons)
        return self


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def merge_recursive(base: Mapping[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``extra`` into ``base`` the way PHP's ``array_merge_recursive`` does.

    Nested mappings merge key by key, lists are concatenated, and a key set on
    both sides with scalar values collects both values into a list.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in extra.items():
        if key not in merged:
            merged[key] = value
            continue
        current = merged[key]
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_recursive(current, value)
        else:
            left = list(current) if isinstance(current, list) else [current]
            right = list(value) if isinstance(value, list) else [value]
            merged[key] = left + right
    return merged


def convert_buttons(buttons: Iterable[Button]) -> tuple[list[list[dict[str, Any]]], bool]:
    """Translate buttons into keyboard rows and report the one-time flag.

    Every button gets its own row. A button whose ``additional`` fields hold
    the one-time marker makes the whole keyboard one-time; the marker itself
    is not sent.
    """
    rows: list[list[dict[str, Any]]] = []
    one_time = False
    for button in buttons:
        additional = dict(button.additional)
        if ONE_TIME_MARKER in additional:
            one_time = True
            del additional[ONE_TIME_MARKER]
        action = {
            "action": {
                "type": "text",
                "payload": _dumps({"command": str(button.value)}),
                "label": str(button.text),
            }
        }
        rows.append([{**action, **additional}])
    return rows, one_time


def build_keyboard(question: Question) -> str:
    """Serialize the keyboard for a question."""
    rows, one_time = convert_buttons(question.buttons)
    return _dumps({"buttons": rows, "one_time": one_time})


def build_service_payload(
    message: Question | OutgoingMessage | Any,
    matching_message: HasRecipient,
    additional_parameters: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build ``messages.send`` parameters for a reply to ``matching_message``."""
    payload = merge_recursive(
        {"peer_id": matching_message.recipient},
        additional_parameters or {},
    )

    if isinstance(message, Question):
        payload["message"] = message.text
        payload["keyboard"] = build_keyboard(message)
    elif isinstance(message, OutgoingMessage):
        payload["message"] = message.text
    else:
        payload["message"] = message if isinstance(message, str) else str(message)

    return payload

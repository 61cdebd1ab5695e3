"""Correlation values bound to the request being served.

The HTTP middleware binds the request id. Webhook dispatch binds the VK
callback being handled, so log lines written deep inside a bot runtime still
say which community and event type they belong to.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass

_REQUEST_ID: ContextVar[str | None] = ContextVar("vkbridge_request_id", default=None)


@dataclass(frozen=True)
class CallbackScope:
    """The VK callback currently being dispatched."""

    event_type: str | None
    group_id: str | None

    @property
    def label(self) -> str:
        return f"{self.event_type or '-'}@{self.group_id or '-'}"


_CALLBACK: ContextVar[CallbackScope | None] = ContextVar("vkbridge_vk_callback", default=None)


def get_request_id() -> str | None:
    return _REQUEST_ID.get()


def set_request_id(request_id: str) -> Token[str | None]:
    return _REQUEST_ID.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    _REQUEST_ID.reset(token)


def get_callback_scope() -> CallbackScope | None:
    return _CALLBACK.get()


def bind_callback(event_type: object, group_id: object) -> Token[CallbackScope | None]:
    """Bind the callback type and community; ids are kept as strings."""
    scope = CallbackScope(
        event_type=event_type if isinstance(event_type, str) else None,
        group_id=str(group_id) if group_id is not None else None,
    )
    return _CALLBACK.set(scope)


def reset_callback(token: Token[CallbackScope | None]) -> None:
    _CALLBACK.reset(token)

"""VK API client for the send, typing and user lookup endpoints."""

from __future__ import annotations

import json
import logging
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from vkbridge.core.config import Settings
from vkbridge.core.observability import log_event
from vkbridge.vk.exceptions import PlatformApiError
from vkbridge.vk.messages import IncomingMessage

logger = logging.getLogger(__name__)

USER_FIELDS = "screen_name, city, contacts"


def _form_value(value: Any) -> Any:
    """Render one parameter the way the VK API reads form fields.

    Flags become ``1``/``0`` and flat lists become comma-separated ids.
    Structured values such as ``content_source`` or ``forward`` are sent as JSON.
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (list, tuple)):
        if any(isinstance(item, (Mapping, list, tuple)) for item in value):
            return json.dumps(value, ensure_ascii=False)
        return ",".join(str(_form_value(item)) for item in value)
    return value


def encode_parameters(parameters: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten API parameters into form data, dropping unset ones."""
    return {
        key: _form_value(value) for key, value in parameters.items() if value is not None
    }


@dataclass(frozen=True)
class VkUser:
    """Subset of a ``users.get`` record plus the raw entry."""

    id: int
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    info: dict[str, Any] = field(default_factory=dict)


class VkApiClient:
    """Thin async wrapper around ``{api_base}/{endpoint}`` calls."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=settings.vk_api_timeout_seconds,
        )

    def _auth_parameters(self) -> dict[str, str]:
        token = self._settings.vk_access_token
        return {
            "access_token": token.get_secret_value() if token else "",
            "v": self._settings.vk_api_version,
            "lang": self._settings.vk_lang,
        }

    @staticmethod
    def _validate_response(endpoint: str, response: httpx.Response) -> dict[str, Any]:
        if response.status_code != 200:
            raise PlatformApiError(
                f"VK {endpoint} returned HTTP {response.status_code}",
                endpoint=endpoint,
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise PlatformApiError(
                f"VK {endpoint} returned a non-JSON body",
                endpoint=endpoint,
                status_code=response.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise PlatformApiError(
                f"VK {endpoint} returned an unexpected body",
                endpoint=endpoint,
                status_code=response.status_code,
            )
        error = data.get("error")
        if error is not None:
            error_code = error.get("error_code") if isinstance(error, dict) else None
            error_msg = error.get("error_msg") if isinstance(error, dict) else str(error)
            raise PlatformApiError(
                f"VK {endpoint} failed: {error_msg}",
                endpoint=endpoint,
                status_code=response.status_code,
                error_code=error_code,
                error_msg=error_msg,
            )
        return data

    async def send_request(self, endpoint: str, parameters: dict[str, Any]) -> dict[str, Any]:
        """POST one API method with the auth parameters appended."""
        form = encode_parameters({**parameters, **self._auth_parameters()})
        url = f"{self._settings.vk_api_base}/{endpoint}"
        log_event(logger, event="vk.api.request", level=logging.DEBUG, endpoint=endpoint)
        try:
            response = await self._client.post(url, data=form)
        except httpx.HTTPError as exc:
            log_event(
                logger,
                event="vk.api.error",
                level=logging.WARNING,
                endpoint=endpoint,
                error=type(exc).__name__,
            )
            raise PlatformApiError(
                f"VK {endpoint} transport failure: {exc}",
                endpoint=endpoint,
                status_code=0,
            ) from exc

        try:
            return self._validate_response(endpoint, response)
        except PlatformApiError as exc:
            log_event(
                logger,
                event="vk.api.error",
                level=logging.WARNING,
                endpoint=endpoint,
                status_code=exc.status_code,
                error_code=exc.error_code,
            )
            raise

    async def send_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a built reply through ``messages.send``."""
        parameters = dict(payload)
        parameters.setdefault("random_id", secrets.randbits(31))
        return await self.send_request("messages.send", parameters)

    async def types(self, matching_message: IncomingMessage) -> dict[str, Any]:
        """Show the typing indicator in the conversation of ``matching_message``."""
        parameters = {
            "user_id": self._settings.vk_group_id,
            "type": "typing",
            "peer_id": matching_message.recipient,
        }
        return await self.send_request("messages.setActivity", parameters)

    async def get_user(self, matching_message: IncomingMessage) -> VkUser:
        """Look up the author of ``matching_message``."""
        data = await self.send_request(
            "users.get",
            {"user_ids": matching_message.sender, "fields": USER_FIELDS},
        )
        users = data.get("response")
        if not isinstance(users, list) or not users:
            raise PlatformApiError(
                "VK users.get returned no users",
                endpoint="users.get",
                status_code=200,
            )
        user = users[0]
        if not isinstance(user, dict) or user.get("id") is None:
            raise PlatformApiError(
                "VK users.get returned a record without an id",
                endpoint="users.get",
                status_code=200,
            )
        return VkUser(
            id=user["id"],
            first_name=user.get("first_name"),
            last_name=user.get("last_name"),
            username=user.get("screen_name"),
            info=user,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this instance created it."""
        if self._owns_client:
            await self._client.aclose()

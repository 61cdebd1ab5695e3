"""Error types raised by the VK adapter."""


class VkAdapterError(Exception):
    """Base class for VK adapter failures."""


class AuthenticationFailure(VkAdapterError):
    """Callback secret did not match the configured secret key."""


class MalformedPayloadError(VkAdapterError):
    """Inbound body is not a JSON object or lacks required fields."""


class MissingContentError(VkAdapterError):
    """Message object carries neither a button command nor text."""


class PlatformApiError(VkAdapterError):
    """VK API call failed at the HTTP level or returned an error envelope."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str,
        status_code: int,
        error_code: int | None = None,
        error_msg: str | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.error_code = error_code
        self.error_msg = error_msg

    @property
    def code(self) -> int:
        """API error code when present, HTTP status otherwise."""
        return self.error_code if self.error_code is not None else self.status_code

"""Per-request response state for one webhook call."""

from __future__ import annotations

ACK_BODY = "ok"


class WebhookContext:
    """At-most-once response guards scoped to a single inbound request.

    VK expects either the confirmation token or the literal ``ok`` as the
    whole response body. Each guard fires once; later calls return ``None``.
    """

    def __init__(self) -> None:
        self._confirmation_sent = False
        self._ack_sent = False
        self._body = ""

    @property
    def confirmation_sent(self) -> bool:
        return self._confirmation_sent

    @property
    def ack_sent(self) -> bool:
        return self._ack_sent

    @property
    def responded(self) -> bool:
        return self._confirmation_sent or self._ack_sent

    @property
    def response_body(self) -> str:
        """Body emitted for this request, empty when nothing was emitted."""
        return self._body

    def respond_confirmation(self, token: str) -> str | None:
        """Emit the handshake token unless a response already went out."""
        if self.responded:
            return None
        self._confirmation_sent = True
        self._body = token
        return token

    def acknowledge(self) -> str | None:
        """Emit the ``ok`` acknowledgement unless a response already went out."""
        if self.responded:
            return None
        self._ack_sent = True
        self._body = ACK_BODY
        return ACK_BODY

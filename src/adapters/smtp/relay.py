"""
HTTP mail relay adapter - Implements EmailSender protocol.

Posts ``{to, code, appName}`` as JSON to the mail relay endpoint. Any 2xx
is a success; anything else becomes EmailDeliveryFailed carrying the
response body text.
"""

import logging

import httpx

from src.domain.exceptions import EmailDeliveryFailed

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Failed to send verification email"


class HttpRelayEmailSender:
    """
    Implements EmailSender protocol via an HTTP mail relay.

    Uses structural subtyping - no explicit inheritance from Protocol.
    No automatic retry: failures are reported to the caller.
    """

    def __init__(self, url: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        """
        Args:
            url: Absolute URL of the relay endpoint
            timeout: Request timeout in seconds
            client: Preconfigured client (tests pass one with a MockTransport)
        """
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)

    def send_verification_code(self, email: str, code: str, app_name: str | None = None) -> None:
        payload = {"to": email, "code": code, "appName": app_name}
        try:
            response = self._client.post(self._url, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Mail relay unreachable: %s", e)
            raise EmailDeliveryFailed(str(e) or DEFAULT_FAILURE_MESSAGE) from e

        if not response.is_success:
            message = response.text.strip() or DEFAULT_FAILURE_MESSAGE
            logger.warning("Mail relay returned %s: %s", response.status_code, message)
            raise EmailDeliveryFailed(message)

    def close(self) -> None:
        self._client.close()

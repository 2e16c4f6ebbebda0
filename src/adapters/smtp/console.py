"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging verification codes to stdout for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For development purposes - never fails, so every send "succeeds".
    """

    def __init__(self, default_app_name: str = "Menubox") -> None:
        self._default_app_name = default_app_name

    def send_verification_code(self, email: str, code: str, app_name: str | None = None) -> None:
        """
        Log verification code to console (simulates email delivery).

        Args:
            email: Recipient email address
            code: 6-digit verification code
            app_name: Brand name, falls back to the configured default
        """
        logger.info(
            "[VERIFICATION] App: %s Email: %s Code: %s",
            app_name or self._default_app_name,
            email,
            code,
        )

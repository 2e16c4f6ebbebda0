"""
SMTP mailer adapter - Delivers verification codes over SMTP.

Backs the mail relay endpoint and the "smtp" email backend. Port 465
uses implicit TLS; any other port upgrades with STARTTLS.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape

from src.domain.exceptions import EmailDeliveryFailed, MailRelayNotConfigured

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "Menubox"


@dataclass(frozen=True)
class SmtpConfig:
    host: str | None
    port: int = 587
    user: str | None = None
    password: str | None = None
    from_address: str | None = None
    timeout: float = 10.0

    def validate(self) -> None:
        """
        Raises:
            MailRelayNotConfigured: If host, user or password is missing
        """
        if not self.host or not self.user or not self.password:
            raise MailRelayNotConfigured(
                "SMTP env vars not configured (SMTP_HOST/SMTP_USER/SMTP_PASSWORD)"
            )

    @property
    def sender(self) -> str:
        return self.from_address or self.user or ""


def build_verification_message(
    sender: str, to: str, code: str, app_name: str | None = None
) -> EmailMessage:
    """Compose the verification email with plain-text and HTML parts."""
    title = app_name or DEFAULT_APP_NAME
    msg = EmailMessage()
    msg["Subject"] = f"{title} verification code"
    msg["From"] = sender
    msg["To"] = to
    msg.set_content(
        f"Use this 6-digit code to verify your {title} account: {code}\n\n"
        "If you didn't request this, you can ignore this email.\n"
    )
    msg.add_alternative(
        f"""\
<div style="font-family:Arial,sans-serif;line-height:1.6">
  <h2 style="margin:0 0 8px 0">{escape(title)} - Verification Code</h2>
  <p>Use this 6-digit code to verify your account:</p>
  <div style="font-size:28px;font-weight:700;letter-spacing:6px;margin:12px 0;padding:12px 16px;background:#f5f5f5;border-radius:12px;display:inline-block">
    {escape(code)}
  </div>
  <p style="color:#666;font-size:12px">If you didn't request this, you can ignore this email.</p>
</div>
""",
        subtype="html",
    )
    return msg


class SmtpEmailSender:
    """
    Implements EmailSender protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    def send_verification_code(self, email: str, code: str, app_name: str | None = None) -> None:
        """
        Raises:
            MailRelayNotConfigured: If SMTP settings are incomplete
            EmailDeliveryFailed: If the SMTP server rejects the message
        """
        config = self._config
        config.validate()
        msg = build_verification_message(config.sender, email, code, app_name)

        try:
            if config.port == 465:
                server = smtplib.SMTP_SSL(config.host, config.port, timeout=config.timeout)
            else:
                server = smtplib.SMTP(config.host, config.port, timeout=config.timeout)
            with server:
                if config.port != 465:
                    server.starttls()
                server.login(config.user, config.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP delivery to %s failed: %s", email, e)
            raise EmailDeliveryFailed(str(e) or "Send failed") from e

        logger.info("Verification email sent to %s", email)

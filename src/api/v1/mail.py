"""
Mail relay endpoint.

Receives ``{to, code, appName}`` from the email gateway and delivers the
verification email over SMTP. Responses are plain text so the gateway can
surface the body as its error message.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse

from src.adapters.smtp.mailer import SmtpEmailSender
from src.api.dependencies import get_smtp_sender
from src.api.models import SendCodeRequest
from src.domain.exceptions import EmailDeliveryFailed, MailRelayNotConfigured

logger = logging.getLogger(__name__)

router = APIRouter(tags=["mail"])


@router.post(
    "/mail/verification-code",
    response_class=PlainTextResponse,
    responses={
        400: {"description": "Missing to/code or invalid address"},
        500: {"description": "SMTP not configured or delivery failed"},
    },
    summary="Send a verification code email",
)
def send_verification_code(
    request_data: SendCodeRequest,
    sender: SmtpEmailSender = Depends(get_smtp_sender),
) -> PlainTextResponse:
    """
    Deliver a verification code by email.

    - **to**: Recipient address
    - **code**: 6-digit verification code
    - **appName**: Optional brand for subject and heading
    """
    if not request_data.to or not request_data.code:
        return PlainTextResponse("Missing to/code", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        validate_email(request_data.to, check_deliverability=False)
    except EmailNotValidError as e:
        logger.info("Rejected recipient address: %s", e)
        return PlainTextResponse("Invalid email address", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        sender.send_verification_code(request_data.to, request_data.code, request_data.app_name)
    except MailRelayNotConfigured as e:
        logger.error("Mail relay misconfigured: %s", e)
        return PlainTextResponse(str(e), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except EmailDeliveryFailed as e:
        return PlainTextResponse(
            str(e) or "Send failed", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return PlainTextResponse("OK")

"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.adapters.identity.tokens import TokenIdentityProvider
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.mailer import SmtpConfig, SmtpEmailSender
from src.adapters.smtp.relay import HttpRelayEmailSender
from src.config.settings import Settings, get_settings
from src.domain.ports import EmailSender, ProfileRepository, VerificationRepository
from src.domain.session import SessionContext
from src.domain.verification import VerificationService


def get_verification_repository(request: Request) -> VerificationRepository:
    """
    Get verification repository from app state.

    The repositories are created during app lifespan startup and stored in app.state.
    """
    return request.app.state.verification_repository


def get_profile_repository(request: Request) -> ProfileRepository:
    """Get profile repository from app state."""
    return request.app.state.profile_repository


def smtp_config_from_settings(settings: Settings) -> SmtpConfig:
    return SmtpConfig(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        from_address=settings.smtp_from,
        timeout=settings.smtp_timeout_seconds,
    )


def build_email_sender(settings: Settings) -> EmailSender:
    """Select the email transport named by settings.email_backend."""
    if settings.email_backend == "relay":
        return HttpRelayEmailSender(
            settings.mail_relay_url, timeout=settings.mail_relay_timeout_seconds
        )
    if settings.email_backend == "smtp":
        return SmtpEmailSender(smtp_config_from_settings(settings))
    return ConsoleEmailSender(default_app_name=settings.app_name)


def get_email_sender(request: Request) -> EmailSender:
    """Get the email sender created at startup."""
    return request.app.state.email_sender


def get_smtp_sender(settings: Settings = Depends(get_settings)) -> SmtpEmailSender:
    """SMTP transport used by the mail relay endpoint."""
    return SmtpEmailSender(smtp_config_from_settings(settings))


def get_verification_service(request: Request) -> VerificationService:
    """
    Create verification service with injected dependencies.

    Wires together the repositories and email sender for the domain service.
    """
    return VerificationService(
        repository=get_verification_repository(request),
        email_sender=get_email_sender(request),
        profiles=get_profile_repository(request),
    )


def get_identity_provider(settings: Settings = Depends(get_settings)) -> TokenIdentityProvider:
    return TokenIdentityProvider(settings.jwt_secret, settings.jwt_algorithm)


# Bearer token security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def get_session_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    identity_provider: TokenIdentityProvider = Depends(get_identity_provider),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> SessionContext:
    """
    Build the SessionContext for the caller of this request.

    A valid bearer token binds the session to its identity and the current
    profile snapshot; otherwise the session stays unbound (signed out).
    """
    session = SessionContext()
    identity = identity_provider.resolve(credentials.credentials) if credentials else None
    if identity is not None:
        session.bind(identity, profiles.get_profile(identity.uid))
    return session


def get_session(session: SessionContext = Depends(get_session_context)) -> SessionContext:
    """Require a signed-in session; 401 otherwise."""
    if not session.is_signed_in:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please sign in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session

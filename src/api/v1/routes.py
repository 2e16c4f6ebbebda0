"""
API v1 routes.

Defines REST endpoints for owner email verification and the access gate.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse, StreamingResponse

from src.api.dependencies import (
    get_profile_repository,
    get_session,
    get_session_context,
    get_verification_service,
)
from src.api.models import (
    AccessResponse,
    ErrorResponse,
    OutcomeResponse,
    ProfileSnapshot,
    RedeemRequest,
    ResendRequest,
    SignupRequest,
    VerificationStatusResponse,
)
from src.domain.access import decide_access, required_roles
from src.domain.ports import ProfileRepository, UserProfile, VerificationOutcome
from src.domain.session import SessionContext
from src.domain.verification import VerificationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

# User-facing copy and HTTP status for each failure outcome
_FAILURES: dict[VerificationOutcome, tuple[int, str]] = {
    VerificationOutcome.NOT_SIGNED_IN: (status.HTTP_401_UNAUTHORIZED, "Please sign in again."),
    VerificationOutcome.RECORD_NOT_FOUND: (
        status.HTTP_404_NOT_FOUND,
        "Verification failed. Please request a new code.",
    ),
    VerificationOutcome.ALREADY_VERIFIED: (status.HTTP_409_CONFLICT, "Already verified."),
    VerificationOutcome.CODE_EXPIRED: (status.HTTP_410_GONE, "Code expired. Please resend."),
    VerificationOutcome.INVALID_CODE: (
        status.HTTP_400_BAD_REQUEST,
        "Invalid code. Please try again.",
    ),
    VerificationOutcome.TOO_SOON: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Please wait a bit before resending.",
    ),
    VerificationOutcome.TOO_MANY_REQUESTS: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests. Try again later.",
    ),
    VerificationOutcome.EMAIL_DELIVERY_FAILED: (
        status.HTTP_502_BAD_GATEWAY,
        "We could not send the verification email. Please resend shortly.",
    ),
}

_OUTCOME_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid code"},
    401: {"model": ErrorResponse, "description": "Not signed in as this user"},
    404: {"model": ErrorResponse, "description": "No verification record"},
    409: {"model": ErrorResponse, "description": "Already verified"},
    410: {"model": ErrorResponse, "description": "Code expired"},
    429: {"model": ErrorResponse, "description": "Resend cooldown or quota"},
    502: {"model": ErrorResponse, "description": "Verification email not delivered"},
}


def _failure(outcome: VerificationOutcome, headers: dict[str, str] | None = None) -> JSONResponse:
    status_code, message = _FAILURES[outcome]
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=message, outcome=outcome.value).model_dump(),
        headers=headers,
    )


def _snapshot(profile: UserProfile) -> ProfileSnapshot:
    return ProfileSnapshot(
        uid=profile.uid,
        email=profile.email,
        role=profile.role.value if profile.role else None,
        is_verified=profile.is_verified,
        verified_at=profile.verified_at,
    )


@router.post(
    "/owners/signup",
    response_model=OutcomeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_OUTCOME_RESPONSES,
    summary="Start owner email verification",
    description="Create the signed-in owner's unverified profile and email "
    "a 6-digit verification code valid for 10 minutes.",
)
def signup(
    request_data: SignupRequest,
    session: SessionContext = Depends(get_session),
    service: VerificationService = Depends(get_verification_service),
) -> OutcomeResponse | JSONResponse:
    """
    Start verification for a newly created owner account.

    - **app_name**: Optional brand shown in the email
    """
    identity = session.identity
    if not identity.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account has no email address",
        )
    outcome = service.start_for_new_owner(identity.uid, identity.email, request_data.app_name)
    if outcome != VerificationOutcome.SUCCESS:
        return _failure(outcome)
    return OutcomeResponse(outcome=outcome.value, message="Verification code sent")


@router.post(
    "/verification/{uid}/resend",
    response_model=OutcomeResponse,
    responses=_OUTCOME_RESPONSES,
    summary="Resend verification code",
    description="Replace the current code with a new one and email it. "
    "Limited to one send per 60 seconds and 5 sends per hour.",
)
def resend(
    uid: str,
    request_data: ResendRequest,
    session: SessionContext = Depends(get_session),
    service: VerificationService = Depends(get_verification_service),
) -> OutcomeResponse | JSONResponse:
    """
    Resend a verification code.

    Cooldown and quota rejections carry a Retry-After header.
    """
    outcome = service.resend(session, uid, request_data.app_name)
    if outcome == VerificationOutcome.SUCCESS:
        return OutcomeResponse(outcome=outcome.value, message="New code sent to your email.")

    headers = None
    if outcome in (VerificationOutcome.TOO_SOON, VerificationOutcome.TOO_MANY_REQUESTS):
        current = service.status(session, uid)
        if current is not None:
            headers = {"Retry-After": str(current.resend_available_in_seconds)}
    return _failure(outcome, headers)


@router.post(
    "/verification/{uid}/redeem",
    response_model=OutcomeResponse,
    responses=_OUTCOME_RESPONSES,
    summary="Redeem verification code",
    description="Submit the 6-digit code received by email to verify the account.",
)
def redeem(
    uid: str,
    request_data: RedeemRequest,
    session: SessionContext = Depends(get_session),
    service: VerificationService = Depends(get_verification_service),
) -> OutcomeResponse | JSONResponse:
    """
    Redeem a verification code.

    An already verified account is reported as a successful no-op so the
    client can move forward.
    """
    outcome = service.redeem(session, uid, request_data.code)
    if outcome == VerificationOutcome.SUCCESS:
        return OutcomeResponse(outcome=outcome.value, message="Email verified")
    if outcome == VerificationOutcome.ALREADY_VERIFIED:
        return OutcomeResponse(outcome=outcome.value, message="Already verified")
    return _failure(outcome)


@router.get(
    "/verification/{uid}",
    response_model=VerificationStatusResponse,
    responses={401: {"model": ErrorResponse, "description": "Not signed in as this user"}},
    summary="Get verification status",
)
def verification_status(
    uid: str,
    session: SessionContext = Depends(get_session),
    service: VerificationService = Depends(get_verification_service),
) -> VerificationStatusResponse | JSONResponse:
    """Derived state, destination email and resend countdown."""
    current = service.status(session, uid)
    if current is None:
        return _failure(VerificationOutcome.NOT_SIGNED_IN)
    return VerificationStatusResponse(
        state=current.state.value,
        email=current.email,
        expires_at=current.expires_at,
        resend_available_in_seconds=current.resend_available_in_seconds,
        sends_remaining_in_window=current.sends_remaining_in_window,
    )


@router.get(
    "/access",
    response_model=AccessResponse,
    summary="Evaluate the route guard",
    description="Decide whether the caller may open an admin panel path.",
)
def access(
    path: str = Query(..., min_length=1, description="Path the client wants to open"),
    session: SessionContext = Depends(get_session_context),
) -> AccessResponse:
    """Access gate decision for ``path``; signed out on a guarded path means login."""
    decision = decide_access(session, path, required_roles(path))
    return AccessResponse(decision=decision.name.lower(), location=decision.location)


@router.get(
    "/profile/stream",
    summary="Stream profile snapshots",
    description="Newline-delimited JSON stream of the caller's profile, "
    "pushed on every change (e.g. when verification completes).",
)
def profile_stream(
    session: SessionContext = Depends(get_session),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> StreamingResponse:
    """Push profile snapshots until the client disconnects."""
    uid = session.identity.uid
    subscription = profiles.subscribe(uid)

    def snapshots():
        try:
            for profile in session.follow(subscription):
                yield _snapshot(profile).model_dump_json() + "\n"
        finally:
            subscription.close()
            logger.info("Profile stream closed for uid=%s", uid)

    return StreamingResponse(snapshots(), media_type="application/x-ndjson")

"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    """Request model for starting owner verification at signup."""

    app_name: str | None = Field(None, max_length=80, description="Brand shown in the email")


class ResendRequest(BaseModel):
    """Request model for resending a verification code."""

    app_name: str | None = Field(None, max_length=80, description="Brand shown in the email")


class RedeemRequest(BaseModel):
    """Request model for redeeming a verification code."""

    code: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^\d{6}$",
        description="6-digit verification code",
    )


class OutcomeResponse(BaseModel):
    """Response model for a completed verification operation."""

    outcome: str
    message: str


class VerificationStatusResponse(BaseModel):
    """Response model for the verification status of a user."""

    state: str
    email: str | None = None
    expires_at: datetime | None = None
    resend_available_in_seconds: int
    sends_remaining_in_window: int


class AccessResponse(BaseModel):
    """Response model for an access gate decision."""

    decision: str
    location: str | None = None


class ProfileSnapshot(BaseModel):
    """One profile snapshot in the profile stream."""

    uid: str
    email: str
    role: str | None = None
    is_verified: bool
    verified_at: datetime | None = None


class SendCodeRequest(BaseModel):
    """Request model for the mail relay endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    to: str | None = None
    code: str | None = Field(None, max_length=16)
    app_name: str | None = Field(None, alias="appName", max_length=80)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    outcome: str | None = None

"""
Domain exceptions - Semantic error types for email verification.

Expected user-facing failures are reported as VerificationOutcome values.
These exceptions cover the remaining cases: transport failures and
conditions that must abort a store transaction.
"""


class VerificationError(Exception):
    """Base class for verification domain errors."""

    pass


class EmailDeliveryFailed(VerificationError):
    """The email gateway did not accept the verification code."""

    pass


class ProfileNotFound(VerificationError):
    """The user profile targeted by redemption does not exist."""

    pass


class MailRelayNotConfigured(VerificationError):
    """SMTP host, user or password is missing from the environment."""

    pass

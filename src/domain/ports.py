"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the records the verification domain works on and the
interfaces (ports) it requires from infrastructure. Adapters implement
these protocols through structural subtyping.
"""

from collections.abc import Iterator
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class VerificationState(str, Enum):
    """
    Derived state of a verification record.

    Only USED is persisted (as the ``used`` flag). ISSUED and EXPIRED are
    computed at read time from ``used`` and ``expires_at``.

    Transitions:
    - NONE -> ISSUED (issue at signup)
    - ISSUED -> ISSUED (resend overwrites the code)
    - ISSUED -> EXPIRED (TTL elapses)
    - EXPIRED -> ISSUED (resend)
    - ISSUED -> USED (successful redemption, terminal)
    """

    NONE = "none"
    ISSUED = "issued"
    EXPIRED = "expired"
    USED = "used"


class VerificationOutcome(Enum):
    """
    Result of a verification protocol operation.

    Every expected failure is reported through this enum rather than raised.
    """

    SUCCESS = "success"
    NOT_SIGNED_IN = "not_signed_in"
    RECORD_NOT_FOUND = "record_not_found"
    ALREADY_VERIFIED = "already_verified"
    CODE_EXPIRED = "code_expired"
    INVALID_CODE = "invalid_code"
    TOO_SOON = "too_soon"
    TOO_MANY_REQUESTS = "too_many_requests"
    EMAIL_DELIVERY_FAILED = "email_delivery_failed"


class Role(str, Enum):
    """Capabilities an authenticated identity can hold."""

    OWNER = "owner"
    SUPERADMIN = "superadmin"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as asserted by the identity provider."""

    uid: str
    email: str = ""
    role: Role | None = None


@dataclass(frozen=True)
class VerificationRecord:
    """One verification record per user identity, keyed by uid."""

    uid: str
    email: str
    code_hash: str
    used: bool
    expires_at: datetime
    last_sent_at: datetime
    send_count_window_start: datetime
    send_count_in_window: int
    created_at: datetime
    verified_at: datetime | None = None

    def state_at(self, now: datetime) -> VerificationState:
        if self.used:
            return VerificationState.USED
        if now > self.expires_at:
            return VerificationState.EXPIRED
        return VerificationState.ISSUED


@dataclass(frozen=True)
class UserProfile:
    """
    Owner profile record.

    ``is_verified`` is written only by code redemption. Profiles stored
    before verification existed carry no flag and are read as verified.
    """

    uid: str
    email: str
    role: Role | None
    is_verified: bool
    created_at: datetime | None = None
    verified_at: datetime | None = None


class VerificationTransaction(Protocol):
    """Atomic unit of work over one uid's verification and profile records."""

    def get(self) -> VerificationRecord | None:
        """Read the record, locking it for the rest of the transaction."""
        ...

    def save(self, record: VerificationRecord) -> None:
        """Create or overwrite the record when the transaction commits."""
        ...

    def mark_profile_verified(self, verified_at: datetime) -> None:
        """
        Flip the user's profile to verified in the same atomic unit.

        Raises:
            ProfileNotFound: If the profile does not exist
        """
        ...


class VerificationRepository(Protocol):
    """Port interface for verification record persistence."""

    def transaction(self, uid: str) -> AbstractContextManager[VerificationTransaction]:
        """
        Open a read-modify-write transaction for one uid.

        Writes are committed when the block exits normally and discarded
        when it raises. Concurrent transactions on the same uid are
        serialized: the second one observes the committed state of the first.
        """
        ...

    def get_record(self, uid: str) -> VerificationRecord | None:
        """Point-in-time read without locking."""
        ...


class ProfileSubscription(Protocol):
    """
    Lazy, infinite stream of profile snapshots.

    Not restartable once iterated; the subscriber stops it with close().
    """

    def __iter__(self) -> Iterator[UserProfile]: ...

    def close(self) -> None: ...


class ProfileRepository(Protocol):
    """Port interface for user profile persistence."""

    def create_owner_profile(self, uid: str, email: str) -> UserProfile:
        """Create an unverified owner profile unless one already exists."""
        ...

    def get_profile(self, uid: str) -> UserProfile | None: ...

    def subscribe(self, uid: str) -> ProfileSubscription: ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_code(self, email: str, code: str, app_name: str | None = None) -> None:
        """
        Send verification code to email address.

        Args:
            email: Recipient email address
            code: 6-digit verification code
            app_name: Brand shown in the email, defaults to the adapter's

        Raises:
            EmailDeliveryFailed: If the transport reports a failure
        """
        ...

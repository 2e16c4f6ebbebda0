"""
Domain layer - Pure business logic with zero framework imports.

This package contains the owner email verification protocol, the session
context and the access gate. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .access import AccessDecision, decide_access, required_roles
from .codes import generate_code, hash_code
from .exceptions import (
    EmailDeliveryFailed,
    MailRelayNotConfigured,
    ProfileNotFound,
    VerificationError,
)
from .ports import (
    EmailSender,
    Identity,
    ProfileRepository,
    ProfileSubscription,
    Role,
    UserProfile,
    VerificationOutcome,
    VerificationRecord,
    VerificationRepository,
    VerificationState,
    VerificationTransaction,
)
from .session import SessionContext
from .verification import VerificationService, VerificationStatus

__all__ = [
    "AccessDecision",
    "EmailDeliveryFailed",
    "EmailSender",
    "Identity",
    "MailRelayNotConfigured",
    "ProfileNotFound",
    "ProfileRepository",
    "ProfileSubscription",
    "Role",
    "SessionContext",
    "UserProfile",
    "VerificationError",
    "VerificationOutcome",
    "VerificationRecord",
    "VerificationRepository",
    "VerificationService",
    "VerificationState",
    "VerificationStatus",
    "VerificationTransaction",
    "decide_access",
    "generate_code",
    "hash_code",
    "required_roles",
]

"""
Verification domain service - one-time code protocol for owner accounts.

States (derived, see VerificationState):
- NONE:    no record for the uid
- ISSUED:  unused code, before expires_at
- EXPIRED: unused code, past expires_at
- USED:    code redeemed, terminal

Operations:
    issue(uid, email)        NONE -> ISSUED (at signup)
    resend(session, uid)     ISSUED/EXPIRED -> ISSUED, cooldown + windowed quota
    redeem(session, uid, c)  ISSUED -> USED, flips the profile's is_verified

Every check-and-write happens inside one repository transaction, so
concurrent resend or redeem calls for the same uid are serialized by the
store. Email is dispatched only after the transaction has committed and
its failure never rolls the record back.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone

from .codes import generate_code, hash_code, hashes_match
from .exceptions import EmailDeliveryFailed, MailRelayNotConfigured, ProfileNotFound
from .ports import (
    EmailSender,
    ProfileRepository,
    VerificationOutcome,
    VerificationRecord,
    VerificationRepository,
    VerificationState,
)
from .session import SessionContext

logger = logging.getLogger(__name__)

CODE_TTL = timedelta(minutes=10)
RESEND_COOLDOWN = timedelta(seconds=60)
SEND_WINDOW = timedelta(minutes=60)
MAX_SENDS_PER_WINDOW = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VerificationStatus:
    """Point-in-time view of a uid's verification, for display."""

    state: VerificationState
    email: str | None = None
    expires_at: datetime | None = None
    resend_available_in_seconds: int = 0
    sends_remaining_in_window: int = MAX_SENDS_PER_WINDOW


@dataclass
class VerificationService:
    """
    Domain service for owner email verification.

    Owns the transition rules; persistence and delivery are reached
    through the injected ports.
    """

    repository: VerificationRepository
    email_sender: EmailSender
    profiles: ProfileRepository | None = None
    code_generator: Callable[[], str] = generate_code
    clock: Callable[[], datetime] = field(default=utcnow)

    def start_for_new_owner(self, uid: str, email: str, app_name: str | None = None) -> VerificationOutcome:
        """
        Signup flow: create the unverified owner profile, then issue a code.

        Existing profiles are left untouched (merge semantics).
        """
        if self.profiles is not None:
            self.profiles.create_owner_profile(uid, email)
        return self.issue(uid, email, app_name)

    def issue(self, uid: str, email: str, app_name: str | None = None) -> VerificationOutcome:
        """
        Issue the first code for a uid and email it.

        Overwrites any previous unused code. A record that has already been
        redeemed is left alone.

        Returns:
            SUCCESS, ALREADY_VERIFIED or EMAIL_DELIVERY_FAILED
        """
        code = self.code_generator()
        code_hash = hash_code(code)

        with self.repository.transaction(uid) as tx:
            now = self.clock()
            existing = tx.get()
            if existing is not None and existing.used:
                return VerificationOutcome.ALREADY_VERIFIED

            tx.save(
                VerificationRecord(
                    uid=uid,
                    email=email,
                    code_hash=code_hash,
                    used=False,
                    expires_at=now + CODE_TTL,
                    last_sent_at=now,
                    send_count_window_start=now,
                    send_count_in_window=1,
                    created_at=existing.created_at if existing is not None else now,
                )
            )

        logger.info("Verification code issued for uid=%s", uid)
        return self._dispatch(uid, email, code, app_name)

    def resend(
        self, session: SessionContext, uid: str, app_name: str | None = None
    ) -> VerificationOutcome:
        """
        Replace the current code with a fresh one and email it.

        Check order: signed-in, record exists, not used, cooldown, quota.
        Any rejection happens before a write and before an email.

        Returns:
            SUCCESS or the specific failure outcome
        """
        if not session.is_signed_in_as(uid):
            return VerificationOutcome.NOT_SIGNED_IN

        code = self.code_generator()
        code_hash = hash_code(code)

        with self.repository.transaction(uid) as tx:
            now = self.clock()
            record = tx.get()
            if record is None:
                return VerificationOutcome.RECORD_NOT_FOUND
            if record.used:
                return VerificationOutcome.ALREADY_VERIFIED
            if now - record.last_sent_at < RESEND_COOLDOWN:
                logger.warning("Resend rejected for uid=%s: cooldown", uid)
                return VerificationOutcome.TOO_SOON

            window_start, count = self._current_window(record, now)
            if count >= MAX_SENDS_PER_WINDOW:
                logger.warning("Resend rejected for uid=%s: quota exhausted", uid)
                return VerificationOutcome.TOO_MANY_REQUESTS

            tx.save(
                replace(
                    record,
                    code_hash=code_hash,
                    expires_at=now + CODE_TTL,
                    last_sent_at=now,
                    send_count_window_start=window_start,
                    send_count_in_window=count + 1,
                )
            )
            email = record.email

        logger.info("Verification code resent for uid=%s (send %d in window)", uid, count + 1)
        return self._dispatch(uid, email, code, app_name)

    def redeem(self, session: SessionContext, uid: str, code: str) -> VerificationOutcome:
        """
        Redeem a code and mark the owner verified.

        The check order is significant: used, then expiry, then hash. A
        correct but late code reports CODE_EXPIRED and a reused code
        reports ALREADY_VERIFIED.

        Returns:
            SUCCESS or the specific failure outcome
        """
        if not session.is_signed_in_as(uid):
            return VerificationOutcome.NOT_SIGNED_IN

        candidate_hash = hash_code(code)

        try:
            with self.repository.transaction(uid) as tx:
                now = self.clock()
                record = tx.get()
                if record is None:
                    return VerificationOutcome.RECORD_NOT_FOUND
                if record.used:
                    return VerificationOutcome.ALREADY_VERIFIED
                if now > record.expires_at:
                    return VerificationOutcome.CODE_EXPIRED
                if not hashes_match(record.code_hash, candidate_hash):
                    logger.warning("Invalid verification code for uid=%s", uid)
                    return VerificationOutcome.INVALID_CODE

                tx.save(replace(record, used=True, verified_at=now))
                tx.mark_profile_verified(now)
        except ProfileNotFound:
            logger.warning("Redemption rolled back for uid=%s: profile missing", uid)
            return VerificationOutcome.RECORD_NOT_FOUND

        logger.info("Email verified for uid=%s", uid)
        return VerificationOutcome.SUCCESS

    def status(self, session: SessionContext, uid: str) -> VerificationStatus | None:
        """
        Current state with resend countdown, or None when not signed in as uid.
        """
        if not session.is_signed_in_as(uid):
            return None

        record = self.repository.get_record(uid)
        if record is None:
            return VerificationStatus(state=VerificationState.NONE)

        now = self.clock()
        window_start, count = self._current_window(record, now)
        wait = RESEND_COOLDOWN - (now - record.last_sent_at)
        if count >= MAX_SENDS_PER_WINDOW:
            wait = max(wait, window_start + SEND_WINDOW - now)

        return VerificationStatus(
            state=record.state_at(now),
            email=record.email,
            expires_at=record.expires_at,
            resend_available_in_seconds=max(0, math.ceil(wait.total_seconds())),
            sends_remaining_in_window=max(0, MAX_SENDS_PER_WINDOW - count),
        )

    @staticmethod
    def _current_window(record: VerificationRecord, now: datetime) -> tuple[datetime, int]:
        """Rate-limit window in force at ``now``; an elapsed window restarts empty."""
        if now - record.send_count_window_start > SEND_WINDOW:
            return now, 0
        return record.send_count_window_start, record.send_count_in_window

    def _dispatch(
        self, uid: str, email: str, code: str, app_name: str | None
    ) -> VerificationOutcome:
        try:
            self.email_sender.send_verification_code(email, code, app_name)
        except (EmailDeliveryFailed, MailRelayNotConfigured) as e:
            logger.warning("Verification email for uid=%s not delivered: %s", uid, e)
            return VerificationOutcome.EMAIL_DELIVERY_FAILED
        return VerificationOutcome.SUCCESS

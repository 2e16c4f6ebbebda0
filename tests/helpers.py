"""
Test helpers shared across the unit, integration and adversarial suites.
"""

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from itertools import cycle
from typing import TypeVar

from src.domain.ports import Identity, Role
from src.domain.session import SessionContext

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
OWNER_UID = "owner-1"
OWNER_EMAIL = "owner@example.com"
FIRST_CODE = "123456"
JWT_SECRET = "test-secret-with-enough-bytes-for-hs256"

T = TypeVar("T")

_DEFAULT_CODES = [
    FIRST_CODE,
    "222222",
    "333333",
    "444444",
    "555555",
    "666666",
    "777777",
    "888888",
    "999999",
    "000000",
]


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set(self, **offset: float) -> None:
        """Move to T0 + offset."""
        self.now = T0 + timedelta(**offset)

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class CodeSequence:
    """Code generator returning a fixed, repeating sequence of distinct codes."""

    def __init__(self, codes: list[str] | None = None) -> None:
        self.issued: list[str] = []
        self._codes = cycle(codes or _DEFAULT_CODES)

    def __call__(self) -> str:
        code = next(self._codes)
        self.issued.append(code)
        return code

    @property
    def last(self) -> str:
        return self.issued[-1]


def signed_in(
    uid: str = OWNER_UID, email: str = OWNER_EMAIL, role: Role | None = Role.OWNER
) -> SessionContext:
    """Session bound to the given identity."""
    session = SessionContext()
    session.bind(Identity(uid=uid, email=email, role=role))
    return session


class RecordingSender:
    """Thread-safe email sender that remembers every code it was asked to send."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.sent: list[tuple[str, str]] = []

    def send_verification_code(self, email: str, code: str, app_name: str | None = None) -> None:
        with self._lock:
            self.sent.append((email, code))


def run_concurrently(attempt: Callable[[], T], attackers: int = 8) -> list[T]:
    """Start ``attackers`` calls of ``attempt`` together and collect the results."""
    barrier = threading.Barrier(attackers)

    def synchronized() -> T:
        barrier.wait()
        return attempt()

    with ThreadPoolExecutor(max_workers=attackers) as executor:
        futures = [executor.submit(synchronized) for _ in range(attackers)]
        return [f.result() for f in futures]

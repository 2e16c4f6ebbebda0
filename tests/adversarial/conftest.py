"""
Shared fixtures for adversarial tests.

Every adversarial scenario runs against both storage backends: the
in-memory store and PostgreSQL (skipped when the database is unreachable).
"""

import pytest

from src.adapters.repository.memory import (
    MemoryProfileRepository,
    MemoryStore,
    MemoryVerificationRepository,
)
from src.adapters.repository.postgres import (
    PostgresProfileRepository,
    PostgresVerificationRepository,
)
from src.domain.verification import VerificationService
from tests.helpers import CodeSequence, FakeClock, RecordingSender


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture(params=["memory", "postgres"])
def service(
    request: pytest.FixtureRequest,
    sender: RecordingSender,
    clock: FakeClock,
    codes: CodeSequence,
) -> VerificationService:
    """VerificationService on the selected backend."""
    if request.param == "postgres":
        pool = request.getfixturevalue("pg_pool")
        repository = PostgresVerificationRepository(pool)
        profiles = PostgresProfileRepository(pool, poll_seconds=0.1)
    else:
        store = MemoryStore()
        repository = MemoryVerificationRepository(store)
        profiles = MemoryProfileRepository(store, poll_seconds=0.05)
    return VerificationService(
        repository=repository,
        email_sender=sender,
        profiles=profiles,
        code_generator=codes,
        clock=clock,
    )

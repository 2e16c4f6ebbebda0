"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for TTL, cooldown and window boundaries
- Deterministic verification codes
- In-memory repositories and a wired VerificationService
- Signed-in sessions
- A migrated PostgreSQL pool (skipped when the database is unreachable)
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.memory import (
    MemoryProfileRepository,
    MemoryStore,
    MemoryVerificationRepository,
)
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from src.domain.session import SessionContext
from src.domain.verification import VerificationService
from tests.helpers import CodeSequence, FakeClock, signed_in


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def codes() -> CodeSequence:
    return CodeSequence()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sender() -> Mock:
    """Email sender that records calls and always succeeds."""
    return Mock()


@pytest.fixture
def service(
    store: MemoryStore, sender: Mock, clock: FakeClock, codes: CodeSequence
) -> VerificationService:
    return VerificationService(
        repository=MemoryVerificationRepository(store),
        email_sender=sender,
        profiles=MemoryProfileRepository(store, poll_seconds=0.05),
        code_generator=codes,
        clock=clock,
    )


@pytest.fixture
def session() -> SessionContext:
    return signed_in()


@pytest.fixture(scope="session")
def postgres_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against the configured database, migrated.

    Tests that use it are skipped when PostgreSQL is not reachable.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=5.0)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_pool(postgres_pool: ConnectionPool) -> ConnectionPool:
    """Migrated pool with empty verification tables."""
    with postgres_pool.connection() as conn:
        conn.execute("DELETE FROM email_verifications")
        conn.execute("DELETE FROM user_profiles")
    return postgres_pool

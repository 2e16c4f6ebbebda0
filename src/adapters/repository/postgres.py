"""
PostgreSQL repository adapters - Implement the verification and profile ports.

This module provides the PostgreSQL implementation of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design - Serialized Read-Modify-Write:
--------------------------------------------------
Every protocol operation runs inside one database transaction opened by
``PostgresVerificationRepository.transaction(uid)``:

1. **SELECT ... FOR UPDATE**: The verification row is locked on read. A
   concurrent resend or redeem for the same uid blocks on the lock and,
   once the first transaction commits, re-reads the committed row
   (READ COMMITTED re-evaluates locked rows). Two callers can therefore
   never both pass the cooldown, quota or ``used`` checks on stale data.

2. **Single commit**: The verification row and the profile row are
   written in the same transaction. Any exception (including
   ProfileNotFound) rolls both back.

3. **Profile notifications**: A trigger issues ``pg_notify`` on every
   profile insert/update; subscriptions LISTEN on that channel.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.exceptions import ProfileNotFound
from src.domain.ports import Role, UserProfile, VerificationRecord

logger = logging.getLogger(__name__)

PROFILE_CHANNEL = "user_profile_changed"

_RECORD_COLUMNS = """
    uid, email, code_hash, used, expires_at, last_sent_at,
    send_count_window_start, send_count_in_window, created_at, verified_at
"""

_PROFILE_COLUMNS = "uid, email, role, is_verified, created_at, verified_at"


def _record_from_row(row: tuple) -> VerificationRecord:
    return VerificationRecord(
        uid=row[0],
        email=row[1],
        code_hash=row[2],
        used=row[3],
        expires_at=row[4],
        last_sent_at=row[5],
        send_count_window_start=row[6],
        send_count_in_window=row[7],
        created_at=row[8],
        verified_at=row[9],
    )


def _profile_from_row(row: tuple) -> UserProfile:
    return UserProfile(
        uid=row[0],
        email=row[1],
        role=Role(row[2]) if row[2] else None,
        # Backward compatibility: profiles without the flag count as verified
        is_verified=True if row[3] is None else row[3],
        created_at=row[4],
        verified_at=row[5],
    )


class _PostgresTransaction:
    """Implements VerificationTransaction on an open cursor."""

    def __init__(self, cursor: psycopg.Cursor, uid: str) -> None:
        self._cursor = cursor
        self._uid = uid

    def get(self) -> VerificationRecord | None:
        self._cursor.execute(
            f"SELECT {_RECORD_COLUMNS} FROM email_verifications WHERE uid = %s FOR UPDATE",
            (self._uid,),
        )
        row = self._cursor.fetchone()
        return _record_from_row(row) if row is not None else None

    def save(self, record: VerificationRecord) -> None:
        # created_at is set once, on insert
        sql = f"""
            INSERT INTO email_verifications ({_RECORD_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (uid) DO UPDATE
            SET email = EXCLUDED.email,
                code_hash = EXCLUDED.code_hash,
                used = EXCLUDED.used,
                expires_at = EXCLUDED.expires_at,
                last_sent_at = EXCLUDED.last_sent_at,
                send_count_window_start = EXCLUDED.send_count_window_start,
                send_count_in_window = EXCLUDED.send_count_in_window,
                verified_at = EXCLUDED.verified_at
        """
        self._cursor.execute(
            sql,
            (
                self._uid,
                record.email,
                record.code_hash,
                record.used,
                record.expires_at,
                record.last_sent_at,
                record.send_count_window_start,
                record.send_count_in_window,
                record.created_at,
                record.verified_at,
            ),
        )

    def mark_profile_verified(self, verified_at: datetime) -> None:
        self._cursor.execute(
            "UPDATE user_profiles SET is_verified = TRUE, verified_at = %s WHERE uid = %s",
            (verified_at, self._uid),
        )
        if self._cursor.rowcount != 1:
            raise ProfileNotFound(self._uid)


class PostgresVerificationRepository:
    """
    Implements VerificationRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def transaction(self, uid: str) -> Iterator[_PostgresTransaction]:
        """
        Open a transaction scoped to one uid.

        Commits when the block exits normally, rolls back on exception.
        """
        with self._pool.connection() as conn, conn.transaction(), conn.cursor() as cursor:
            yield _PostgresTransaction(cursor, uid)

    def get_record(self, uid: str) -> VerificationRecord | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                f"SELECT {_RECORD_COLUMNS} FROM email_verifications WHERE uid = %s",
                (uid,),
            )
            row = cursor.fetchone()
        return _record_from_row(row) if row is not None else None


class PostgresProfileSubscription:
    """
    Implements ProfileSubscription via LISTEN/NOTIFY.

    Holds a dedicated autocommit connection while iterated. The first
    snapshot is the profile as it is at subscription time.
    """

    def __init__(
        self, repository: "PostgresProfileRepository", uid: str, poll_seconds: float = 1.0
    ) -> None:
        self._repository = repository
        self._uid = uid
        self._poll_seconds = poll_seconds
        self._started = False
        self._closed = threading.Event()

    def __iter__(self) -> Iterator[UserProfile]:
        if self._started:
            raise RuntimeError("Profile subscription cannot be restarted")
        self._started = True
        return self._snapshots()

    def close(self) -> None:
        self._closed.set()

    def _snapshots(self) -> Iterator[UserProfile]:
        with psycopg.connect(self._repository.conninfo, autocommit=True) as conn:
            conn.execute(f"LISTEN {PROFILE_CHANNEL}")

            profile = self._repository.get_profile(self._uid)
            if profile is not None:
                yield profile

            while not self._closed.is_set():
                # Bounded wait so close() is observed between notifications
                for notify in conn.notifies(timeout=self._poll_seconds):
                    if notify.payload != self._uid:
                        continue
                    profile = self._repository.get_profile(self._uid)
                    if profile is not None:
                        yield profile
                    if self._closed.is_set():
                        return


class PostgresProfileRepository:
    """Implements ProfileRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool, poll_seconds: float = 1.0) -> None:
        self._pool = pool
        self._poll_seconds = poll_seconds

    @property
    def conninfo(self) -> str:
        return self._pool.conninfo

    def create_owner_profile(self, uid: str, email: str) -> UserProfile:
        """
        Create an unverified owner profile unless the uid already has one.

        ON CONFLICT DO NOTHING keeps existing profiles (and their
        verification flag) untouched.
        """
        sql = """
            INSERT INTO user_profiles (uid, email, role, is_verified, created_at)
            VALUES (%s, %s, 'owner', FALSE, NOW())
            ON CONFLICT (uid) DO NOTHING
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (uid, email))
            cursor.execute(
                f"SELECT {_PROFILE_COLUMNS} FROM user_profiles WHERE uid = %s", (uid,)
            )
            row = cursor.fetchone()
            conn.commit()
        return _profile_from_row(row)

    def get_profile(self, uid: str) -> UserProfile | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                f"SELECT {_PROFILE_COLUMNS} FROM user_profiles WHERE uid = %s", (uid,)
            )
            row = cursor.fetchone()
        return _profile_from_row(row) if row is not None else None

    def subscribe(self, uid: str) -> PostgresProfileSubscription:
        return PostgresProfileSubscription(self, uid, poll_seconds=self._poll_seconds)


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e

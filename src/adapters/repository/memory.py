"""
In-memory repository adapters - Implement the verification and profile ports.

Thread-safe process-local store used for development (storage_backend =
"memory") and for exercising the protocol's concurrency guarantees in
tests without a database.

Each uid has its own lock, held for the whole transaction, which plays the
role of Postgres' row lock. Writes are staged on the transaction and
applied together on normal exit, so a failing transaction leaves no trace.
"""

import logging
import queue
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone

from src.domain.exceptions import ProfileNotFound
from src.domain.ports import Role, UserProfile, VerificationRecord

logger = logging.getLogger(__name__)


class MemoryStore:
    """Shared state behind the memory repositories."""

    def __init__(self) -> None:
        self.records: dict[str, VerificationRecord] = {}
        self.profiles: dict[str, UserProfile] = {}
        self._registry_lock = threading.Lock()
        self._uid_locks: dict[str, threading.Lock] = {}
        self._subscribers: dict[str, list[queue.Queue]] = {}

    def lock_for(self, uid: str) -> threading.Lock:
        with self._registry_lock:
            return self._uid_locks.setdefault(uid, threading.Lock())

    def put_profile(self, profile: UserProfile) -> None:
        with self._registry_lock:
            self.profiles[profile.uid] = profile
            listeners = list(self._subscribers.get(profile.uid, ()))
        for listener in listeners:
            listener.put(profile)

    def add_listener(self, uid: str) -> queue.Queue:
        listener: queue.Queue = queue.Queue()
        with self._registry_lock:
            self._subscribers.setdefault(uid, []).append(listener)
        return listener

    def remove_listener(self, uid: str, listener: queue.Queue) -> None:
        with self._registry_lock:
            listeners = self._subscribers.get(uid, [])
            if listener in listeners:
                listeners.remove(listener)


class _MemoryTransaction:
    """Implements VerificationTransaction with staged writes."""

    def __init__(self, store: MemoryStore, uid: str) -> None:
        self._store = store
        self._uid = uid
        self._record: VerificationRecord | None = None
        self._profile: UserProfile | None = None

    def get(self) -> VerificationRecord | None:
        if self._record is not None:
            return self._record
        return self._store.records.get(self._uid)

    def save(self, record: VerificationRecord) -> None:
        existing = self._store.records.get(self._uid)
        if existing is not None:
            record = replace(record, created_at=existing.created_at)
        self._record = record

    def mark_profile_verified(self, verified_at: datetime) -> None:
        profile = self._store.profiles.get(self._uid)
        if profile is None:
            raise ProfileNotFound(self._uid)
        self._profile = replace(profile, is_verified=True, verified_at=verified_at)

    def commit(self) -> None:
        if self._record is not None:
            self._store.records[self._uid] = self._record
        if self._profile is not None:
            self._store.put_profile(self._profile)


class MemoryVerificationRepository:
    """Implements VerificationRepository protocol in process memory."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    @contextmanager
    def transaction(self, uid: str) -> Iterator[_MemoryTransaction]:
        with self._store.lock_for(uid):
            tx = _MemoryTransaction(self._store, uid)
            yield tx
            tx.commit()

    def get_record(self, uid: str) -> VerificationRecord | None:
        return self._store.records.get(uid)


class MemoryProfileSubscription:
    """Implements ProfileSubscription over a per-subscriber queue."""

    def __init__(self, store: MemoryStore, uid: str, poll_seconds: float = 1.0) -> None:
        self._store = store
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
        listener = self._store.add_listener(self._uid)
        try:
            profile = self._store.profiles.get(self._uid)
            if profile is not None:
                yield profile
            while not self._closed.is_set():
                try:
                    profile = listener.get(timeout=self._poll_seconds)
                except queue.Empty:
                    continue
                yield profile
        finally:
            self._store.remove_listener(self._uid, listener)


class MemoryProfileRepository:
    """Implements ProfileRepository protocol in process memory."""

    def __init__(self, store: MemoryStore, poll_seconds: float = 1.0) -> None:
        self._store = store
        self._poll_seconds = poll_seconds

    def create_owner_profile(self, uid: str, email: str) -> UserProfile:
        with self._store.lock_for(uid):
            existing = self._store.profiles.get(uid)
            if existing is not None:
                return existing
            profile = UserProfile(
                uid=uid,
                email=email,
                role=Role.OWNER,
                is_verified=False,
                created_at=datetime.now(timezone.utc),
            )
            self._store.put_profile(profile)
        logger.info("Created owner profile for uid=%s", uid)
        return profile

    def get_profile(self, uid: str) -> UserProfile | None:
        return self._store.profiles.get(uid)

    def subscribe(self, uid: str) -> MemoryProfileSubscription:
        return MemoryProfileSubscription(self._store, uid, poll_seconds=self._poll_seconds)

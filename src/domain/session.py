"""
Session context - explicit holder of the signed-in identity.

A SessionContext is bound when a caller signs in (for the HTTP API: once
per request, from the bearer token) and cleared at sign-out. It carries
the latest known profile snapshot so the access gate can decide without
reaching into storage itself.
"""

import threading
from collections.abc import Iterable, Iterator

from .ports import Identity, UserProfile


class SessionContext:
    """Identity and profile snapshot for one signed-in caller."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._identity: Identity | None = None
        self._profile: UserProfile | None = None

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    @property
    def is_signed_in(self) -> bool:
        return self._identity is not None

    def bind(self, identity: Identity, profile: UserProfile | None = None) -> None:
        """Bind the session to a freshly signed-in identity."""
        with self._lock:
            self._identity = identity
            self._profile = profile

    def clear(self) -> None:
        """Sign out: drop identity and profile."""
        with self._lock:
            self._identity = None
            self._profile = None

    def is_signed_in_as(self, uid: str) -> bool:
        identity = self._identity
        return identity is not None and identity.uid == uid

    def update_profile(self, profile: UserProfile) -> bool:
        """
        Replace the held profile snapshot.

        Returns False (and ignores the snapshot) when the session is not
        bound to the snapshot's uid.
        """
        with self._lock:
            if self._identity is None or self._identity.uid != profile.uid:
                return False
            self._profile = profile
            return True

    def follow(self, snapshots: Iterable[UserProfile]) -> Iterator[UserProfile]:
        """
        Advance the held profile from a snapshot stream.

        Stops as soon as the session is cleared or rebound to another uid.
        """
        for profile in snapshots:
            if not self.update_profile(profile):
                return
            yield profile

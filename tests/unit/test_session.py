"""
Unit tests for SessionContext.
"""

from src.domain.ports import Identity, Role, UserProfile
from src.domain.session import SessionContext
from tests.helpers import OWNER_EMAIL, OWNER_UID, signed_in


def profile(uid: str = OWNER_UID, is_verified: bool | None = False) -> UserProfile:
    return UserProfile(uid=uid, email=OWNER_EMAIL, role=Role.OWNER, is_verified=is_verified)


class TestBinding:
    def test_new_session_is_signed_out(self) -> None:
        session = SessionContext()
        assert session.is_signed_in is False
        assert session.identity is None
        assert session.profile is None

    def test_bind_sets_identity_and_profile(self) -> None:
        session = SessionContext()
        session.bind(Identity(uid=OWNER_UID, email=OWNER_EMAIL), profile())
        assert session.is_signed_in is True
        assert session.is_signed_in_as(OWNER_UID)
        assert session.profile == profile()

    def test_is_signed_in_as_other_uid(self) -> None:
        assert signed_in().is_signed_in_as("someone-else") is False

    def test_clear_drops_everything(self) -> None:
        session = signed_in()
        session.update_profile(profile())
        session.clear()
        assert session.identity is None
        assert session.profile is None
        assert session.is_signed_in_as(OWNER_UID) is False

    def test_rebind_replaces_profile(self) -> None:
        session = signed_in()
        session.update_profile(profile())
        session.bind(Identity(uid="owner-2"))
        assert session.profile is None


class TestUpdateProfile:
    def test_matching_uid_accepted(self) -> None:
        session = signed_in()
        assert session.update_profile(profile(is_verified=True)) is True
        assert session.profile.is_verified is True

    def test_foreign_uid_ignored(self) -> None:
        session = signed_in()
        assert session.update_profile(profile(uid="owner-2")) is False
        assert session.profile is None

    def test_signed_out_ignored(self) -> None:
        session = SessionContext()
        assert session.update_profile(profile()) is False


class TestFollow:
    def test_follow_applies_each_snapshot(self) -> None:
        session = signed_in()
        snapshots = [profile(is_verified=False), profile(is_verified=True)]

        seen = list(session.follow(snapshots))

        assert seen == snapshots
        assert session.profile.is_verified is True

    def test_follow_stops_after_sign_out(self) -> None:
        session = signed_in()

        def snapshots():
            yield profile(is_verified=False)
            session.clear()
            yield profile(is_verified=True)
            yield profile(is_verified=True)

        seen = list(session.follow(snapshots()))

        assert len(seen) == 1
        assert session.profile is None

    def test_follow_stops_after_identity_change(self) -> None:
        session = signed_in()

        def snapshots():
            yield profile()
            session.bind(Identity(uid="owner-2"))
            yield profile()

        assert len(list(session.follow(snapshots()))) == 1

"""
Access gate - route guard decisions for the admin panel.

The gate only consumes the outcome of verification (the profile's
``is_verified`` flag); it never reads verification records.
"""

from enum import Enum

from .ports import Role
from .session import SessionContext

LOGIN_PATH = "/admin/login"
VERIFY_PATH = "/admin/verify"
RECOVERY_PATH = "/admin/forgot"
OWNER_HOME = "/admin"
SUPERADMIN_HOME = "/sa"


class AccessDecision(Enum):
    """What the guard does with a navigation attempt."""

    ALLOW = None
    REDIRECT_LOGIN = LOGIN_PATH
    REDIRECT_VERIFY = VERIFY_PATH
    REDIRECT_OWNER_HOME = OWNER_HOME
    REDIRECT_SUPERADMIN_HOME = SUPERADMIN_HOME

    @property
    def location(self) -> str | None:
        return self.value


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_guarded(path: str) -> bool:
    """Whether ``path`` sits behind the route guard at all.

    Public menu pages and the login, recovery and verification screens are
    open to anyone, signed in or not.
    """
    if _under(path, SUPERADMIN_HOME):
        return True
    if path == LOGIN_PATH or _under(path, RECOVERY_PATH) or _under(path, VERIFY_PATH):
        return False
    return _under(path, OWNER_HOME)


def required_roles(path: str) -> frozenset[Role] | None:
    """Roles allowed on a guarded path, or None when the path is not guarded."""
    if not is_guarded(path):
        return None
    if _under(path, SUPERADMIN_HOME):
        return frozenset({Role.SUPERADMIN})
    return frozenset({Role.OWNER})


def decide_access(
    session: SessionContext,
    path: str,
    allowed_roles: frozenset[Role] | None = None,
) -> AccessDecision:
    """
    Decide whether the session may open ``path``.

    Rules, in order:
    0. Unguarded path (public pages, login, recovery, verification): allow.
    1. No identity: redirect to login.
    2. Role-restricted route and role unknown: redirect to the owner home.
    3. Wrong role: owners are sent to /admin, super-admins to /sa.
    4. Unverified owner: redirect to verification.
    """
    if not is_guarded(path):
        return AccessDecision.ALLOW

    identity = session.identity
    if identity is None:
        return AccessDecision.REDIRECT_LOGIN

    profile = session.profile
    role = identity.role or (profile.role if profile is not None else None)

    if allowed_roles is not None:
        if role is None:
            return AccessDecision.REDIRECT_OWNER_HOME
        if role not in allowed_roles:
            if role == Role.SUPERADMIN:
                return AccessDecision.REDIRECT_SUPERADMIN_HOME
            return AccessDecision.REDIRECT_OWNER_HOME

    if role == Role.OWNER and profile is not None and profile.is_verified is not True:
        return AccessDecision.REDIRECT_VERIFY

    return AccessDecision.ALLOW

"""
Bearer token identity adapter.

The identity provider is external; it issues JWTs signed with a secret
shared with this service. Claims used:
- sub:        uid
- email:      account email
- role:       "owner" | "superadmin" (optional)
- superadmin: true (legacy custom claim, optional)
"""

import logging

import jwt

from src.domain.ports import Identity, Role

logger = logging.getLogger(__name__)


def _role_from_claims(claims: dict) -> Role | None:
    if claims.get("role") == Role.SUPERADMIN.value or claims.get("superadmin") is True:
        return Role.SUPERADMIN
    if claims.get("role") == Role.OWNER.value:
        return Role.OWNER
    return None


class TokenIdentityProvider:
    """Resolves bearer tokens into identities."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    def resolve(self, token: str) -> Identity | None:
        """
        Decode and verify a token.

        Returns:
            Identity, or None when the token is invalid, expired or has no subject
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.InvalidTokenError as e:
            logger.info("Rejected bearer token: %s", e)
            return None

        uid = claims.get("sub")
        if not uid:
            return None
        return Identity(uid=str(uid), email=claims.get("email", ""), role=_role_from_claims(claims))

    def issue(self, identity: Identity) -> str:
        """Sign a token for an identity (development and tests)."""
        claims = {"sub": identity.uid, "email": identity.email}
        if identity.role is not None:
            claims["role"] = identity.role.value
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

"""
Verification code generation and hashing.

Codes are the only secret protecting redemption, so they are drawn from
the secrets module. Only the SHA-256 hex digest is ever stored.
"""

import hashlib
import secrets

CODE_LENGTH = 6
_DIGITS = "0123456789"


def generate_code() -> str:
    """
    Generate a cryptographically secure 6-digit verification code.

    Returns a string to preserve leading zeros.
    """
    return "".join(secrets.choice(_DIGITS) for _ in range(CODE_LENGTH))


def hash_code(code: str) -> str:
    """Deterministic one-way digest of a code, rendered as hex."""
    return hashlib.sha256(code.encode()).hexdigest()


def hashes_match(stored_hash: str, candidate_hash: str) -> bool:
    # Constant-time comparison
    return secrets.compare_digest(stored_hash.encode(), candidate_hash.encode())

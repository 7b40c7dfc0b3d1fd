"""
Associates Backend — Secret Hashing
====================================

What:  bcrypt hashing and verification for credential secrets.
Why:   bcrypt salts every hash and has a tunable work factor, so a leaked
       credentials table does not hand out passwords.
How:   hash_secret() on provisioning/rotation, verify_secret() on login.
       verify_dummy() burns the same bcrypt cost for unknown identifiers, so
       "no such user" and "wrong password" take comparable time.
"""

import bcrypt

# Work factor 12 ≈ 250ms per hash on current hardware
BCRYPT_ROUNDS = 12

# Hash of a random string nobody knows; only ever compared against
_DUMMY_HASH = bcrypt.hashpw(b"associates-dummy-secret", bcrypt.gensalt(rounds=BCRYPT_ROUNDS))


def hash_secret(secret: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a secret with bcrypt (auto-salted)."""
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_secret(secret: str, secret_hash: str) -> bool:
    """
    Constant-time comparison of a secret against a bcrypt hash.

    Returns False (never raises) for malformed hashes, so a corrupted row
    behaves like a wrong password.
    """
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), secret_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def verify_dummy(secret: str) -> bool:
    """Spend one bcrypt comparison without a real hash. Always False."""
    try:
        bcrypt.checkpw(secret.encode("utf-8"), _DUMMY_HASH)
    except ValueError:
        # bcrypt rejects secrets over 72 bytes
        pass
    return False

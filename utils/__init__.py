import bcrypt

import config

# bcrypt only accepts the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72

# Checked when the username is unknown so both login failures cost one bcrypt check
_DUMMY_HASH = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(config.BCRYPT_ROUNDS)).decode("utf-8")


def get_password_hash(password: str) -> str:
    """Hash a plaintext password with a fresh random salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(config.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str | None) -> bool:
    """Constant-time check of `password` against a stored bcrypt hash.

    A missing hash, or a password bcrypt could never have hashed, still
    runs a full comparison against a dummy hash and then reports failure.
    """
    secret = password.encode("utf-8")
    if hashed is None or len(secret) > BCRYPT_MAX_BYTES:
        bcrypt.checkpw(secret[:BCRYPT_MAX_BYTES], _DUMMY_HASH.encode("utf-8"))
        return False
    try:
        return bcrypt.checkpw(secret, hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


__all__ = ["BCRYPT_MAX_BYTES", "get_password_hash", "verify_password"]

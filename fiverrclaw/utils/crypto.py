"""API key and password hashing utilities."""

import hashlib
import secrets
import string

import bcrypt

API_KEY_PREFIX = "fc_"
_API_KEY_ALPHABET = string.ascii_lowercase + string.digits


def generate_api_key() -> str:
    """Generate an agent API key: ``fc_`` + 32 lowercase alphanumerics."""
    return API_KEY_PREFIX + "".join(secrets.choice(_API_KEY_ALPHABET) for _ in range(32))


def hash_api_key(api_key: str) -> str:
    """SHA-256 hex digest used to look up an agent by its key.

    API keys are high-entropy random strings, so a fast unsalted digest is
    enough and keeps the lookup a single indexed equality match.
    """
    return hashlib.sha256(api_key.encode()).hexdigest()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str | None) -> bool:
    """Check a password against its bcrypt hash. Missing or malformed hashes never match."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False

"""Security utilities for password hashing and token handling."""

import hashlib
import hmac
import secrets

from passlib.context import CryptContext

from login_gate.config import settings

# Password hashing context using Argon2
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2.

    Args:
        password: Plain text password

    Returns:
        Hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Returns False for empty or unparseable hashes instead of raising.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def generate_random_token(length: int = 32) -> str:
    """
    Generate a random URL-safe token.

    Args:
        length: Number of random bytes (default 32)

    Returns:
        URL-safe random token
    """
    return secrets.token_urlsafe(length)


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest of a raw token string."""
    return hashlib.sha256(token.encode()).hexdigest()


def hmac_digest(key: str, message: str) -> str:
    """HMAC-SHA256 of ``message``, keyed by ``key`` and the application secret."""
    return hmac.new(
        (key + settings.SECRET_KEY).encode(), message.encode(), hashlib.sha256
    ).hexdigest()


def tokens_match(expected: str, actual: str) -> bool:
    """Constant time string comparison."""
    return hmac.compare_digest(expected.encode(), actual.encode())

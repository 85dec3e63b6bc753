"""Security utilities for local credentials and application API keys.

Provides secure secret generation, hashing, and verification. Uses
cryptographically secure random generation and bcrypt for hashing.
"""

import secrets

import bcrypt

API_KEY_PREFIX = "agk_"


def generate_salt() -> str:
    """Generate a bcrypt salt.

    The salt is stored next to the hash so a password can be rehashed with
    the same salt; the hash itself also embeds it.
    """
    return bcrypt.gensalt().decode()


def hash_password(password: str, salt: str) -> str:
    """Hash a password with bcrypt using the given salt.

    Args:
        password: The plaintext password
        salt: A salt produced by ``generate_salt``

    Returns:
        The bcrypt hash as a string
    """
    return bcrypt.hashpw(password.encode(), salt.encode()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash using constant-time comparison.

    Args:
        password: The plaintext password to verify
        password_hash: The bcrypt hash to verify against

    Returns:
        True if the password matches the hash, False otherwise
    """
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Invalid hash format
        return False


def generate_token() -> str:
    """Generate a confirmation or password reset token (40 hex chars)."""
    return secrets.token_hex(20)


def generate_password() -> str:
    """Generate a 16-hex-char password for invited users."""
    return secrets.token_hex(8)


def generate_api_key_secret() -> str:
    """Generate a URL-safe API key with the agk_ prefix.

    Generates 32 bytes of cryptographically secure random data
    and encodes it as a URL-safe base64 string.
    """
    # replace - with _ for ease of copy/paste
    random_part = secrets.token_urlsafe(32).replace("-", "_")
    return f"{API_KEY_PREFIX}{random_part}"
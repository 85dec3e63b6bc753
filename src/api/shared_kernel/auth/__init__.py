"""Authentication shared kernel module."""

from shared_kernel.auth.observability import (
    DefaultSessionTokenProbe,
    SessionTokenProbe,
)
from shared_kernel.auth.session_token import InvalidTokenError, SessionTokenCodec

__all__ = [
    "DefaultSessionTokenProbe",
    "InvalidTokenError",
    "SessionTokenCodec",
    "SessionTokenProbe",
]

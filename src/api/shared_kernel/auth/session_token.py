"""HMAC-signed session tokens.

Encodes and verifies the compact claim sets handed to clients after login.
Signing uses python-jose with a shared secret.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Mapping

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

if TYPE_CHECKING:
    from shared_kernel.auth.observability import SessionTokenProbe


class InvalidTokenError(Exception):
    """Raised when a session token is malformed, forged or expired."""

    pass


class SessionTokenCodec:
    """Signs and verifies session tokens with a shared secret."""

    def __init__(
        self,
        secret: str,
        probe: SessionTokenProbe,
        algorithm: str = "HS256",
    ):
        """Initialize the codec.

        Args:
            secret: HMAC signing secret
            probe: Observability probe for logging events
            algorithm: JWS algorithm (default: HS256)
        """
        self._secret = secret
        self._algorithm = algorithm
        self._probe = probe

    def encode(self, claims: Mapping[str, Any], expires_in_minutes: int = 0) -> str:
        """Sign a claim set.

        ``iat`` is set to the current time. ``exp`` is only added when
        ``expires_in_minutes`` is positive; 0 means the token never expires.

        Args:
            claims: Claims to sign; ``iat`` and ``exp`` in here are replaced
            expires_in_minutes: Token lifetime

        Returns:
            The compact serialized token
        """
        now = datetime.now(tz=timezone.utc)
        payload = {k: v for k, v in claims.items() if k not in ("iat", "exp")}
        payload["iat"] = int(now.timestamp())
        if expires_in_minutes > 0:
            payload["exp"] = int((now + timedelta(minutes=expires_in_minutes)).timestamp())
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """Verify signature and expiry and return the claims.

        Raises:
            InvalidTokenError: If the token is malformed, forged or expired
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_aud": False},
            )
        except ExpiredSignatureError as e:
            self._probe.token_decode_failed(reason="Token expired")
            raise InvalidTokenError("Token has expired") from e
        except JWTError as e:
            self._probe.token_decode_failed(reason=f"JWT error: {e}")
            raise InvalidTokenError(f"Invalid token: {e}") from e

        if "id" not in claims:
            self._probe.token_decode_failed(reason="Missing id claim")
            raise InvalidTokenError("Missing required claim: id")

        self._probe.token_decoded(user_id=str(claims["id"]))
        return claims

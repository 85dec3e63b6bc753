"""Session token service for IAM bounded context.

Issues the signed session tokens handed to clients and decides whether a
presented token still describes the stored identity.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultTokenServiceProbe,
    TokenServiceProbe,
)
from iam.application.value_objects import CurrentUser
from iam.domain.aggregates import User
from iam.domain.value_objects import MICROSERVICE_ID, ExtraUserData, Role, UserId
from iam.ports.exceptions import TokenRevokedError, UnauthorizedError
from iam.ports.repositories import IUserRepository
from infrastructure.database import transaction
from infrastructure.settings import CoreConfig, IdentityBackend
from shared_kernel.auth import InvalidTokenError, SessionTokenCodec


def _epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class TokenService:
    """Issues session tokens and checks them for revocation.

    A token is revoked as soon as the stored user no longer matches the
    claims it was signed with: a changed role, email or application grant
    invalidates every token issued before the change.
    """

    def __init__(
        self,
        user_repository: IUserRepository,
        session: AsyncSession,
        config: CoreConfig,
        codec: SessionTokenCodec,
        probe: TokenServiceProbe | None = None,
    ):
        """Initialize TokenService with dependencies.

        Args:
            user_repository: Repository of the configured identity backend
            session: Database session for transaction management
            config: Immutable core configuration
            codec: Signs and verifies tokens
            probe: Optional domain probe for observability
        """
        self._user_repository = user_repository
        self._session = session
        self._config = config
        self._codec = codec
        self._probe = probe or DefaultTokenServiceProbe()

    @property
    def _is_local_backend(self) -> bool:
        return self._config.identity_backend == IdentityBackend.LOCAL

    def build_claims(self, user: User) -> dict[str, Any]:
        """Claim set describing a user at the current instant."""
        return {
            "id": user.id.value,
            "role": user.role.value,
            "provider": user.provider.value,
            "email": user.email,
            "extraUserData": user.extra_user_data.to_dict(),
            "createdAt": _epoch_millis(datetime.now(UTC)),
            "photo": user.photo,
            "name": user.name,
        }

    async def issue(self, user: User, persist: bool = False) -> str:
        """Sign a session token for a user.

        Args:
            user: The token subject
            persist: Also store the token on the user record. Only honoured
                by the local identity backend.

        Returns:
            The signed token
        """
        token = self._codec.encode(
            self.build_claims(user), self._config.token_expires_in_minutes
        )

        persisted = persist and self._is_local_backend
        if persisted:
            async with transaction(self._session):
                user.record_token(token)
                await self._user_repository.save(user)

        self._probe.token_issued(user.id.value, persisted)
        return token

    def issue_for_microservice(self, payload: Mapping[str, Any]) -> str:
        """Sign a non-expiring token for an internal service.

        The payload is signed as given apart from ``id``, which is forced to
        the microservice pseudo-id. A supplied ``createdAt`` is preserved.
        """
        claims = dict(payload)
        claims["id"] = MICROSERVICE_ID
        claims.setdefault("createdAt", _epoch_millis(datetime.now(UTC)))
        token = self._codec.encode(claims, expires_in_minutes=0)
        self._probe.microservice_token_issued()
        return token

    def decode(self, token: str) -> dict[str, Any]:
        """Verify a token and return its claims.

        Raises:
            InvalidTokenError: If the token is malformed, forged or expired
        """
        return self._codec.decode(token)

    async def is_revoked(self, claims: Mapping[str, Any]) -> bool:
        """Check whether decoded claims drifted from the stored identity.

        The microservice pseudo-identity is never revoked. Any failure while
        looking the user up counts as revoked.
        """
        user_id = str(claims.get("id"))
        if user_id == MICROSERVICE_ID:
            return False

        try:
            user = await self._lookup(claims)
        except Exception as e:
            self._probe.revocation_check_failed(user_id, str(e))
            return True

        if user is None:
            self._probe.token_revoked(user_id, "user_not_found")
            return True

        reason = self._drift(user, claims)
        if reason is not None:
            self._probe.token_revoked(user_id, reason)
            return True
        return False

    async def authenticate(self, token: str) -> CurrentUser:
        """Resolve a bearer token into the calling user.

        Raises:
            UnauthorizedError: If the token cannot be verified
            TokenRevokedError: If the token no longer matches the stored user
        """
        try:
            claims = self.decode(token)
        except InvalidTokenError as e:
            self._probe.authentication_failed(str(e))
            raise UnauthorizedError("Invalid token") from e

        if await self.is_revoked(claims):
            self._probe.authentication_failed("revoked")
            raise TokenRevokedError()

        try:
            current_user = _current_user_from_claims(claims)
        except ValueError as e:
            self._probe.authentication_failed(str(e))
            raise UnauthorizedError("Invalid token") from e

        self._probe.user_authenticated(current_user.user_id, current_user.role.value)
        return current_user

    async def _lookup(self, claims: Mapping[str, Any]) -> User | None:
        async with transaction(self._session):
            if self._is_local_backend:
                return await self._user_repository.get_by_id(
                    UserId.from_string(str(claims.get("id")))
                )
            email = claims.get("email")
            if not email:
                return None
            return await self._user_repository.get_by_email(email)

    @staticmethod
    def _drift(user: User, claims: Mapping[str, Any]) -> str | None:
        if user.id.value != claims.get("id"):
            return "id_changed"
        if user.role.value != claims.get("role"):
            return "role_changed"
        presented = ExtraUserData.from_dict(claims.get("extraUserData"))
        if user.extra_user_data.comparison_key() != presented.comparison_key():
            return "apps_changed"
        if user.email != claims.get("email"):
            return "email_changed"
        return None


def _current_user_from_claims(claims: Mapping[str, Any]) -> CurrentUser:
    user_id = str(claims["id"])
    if user_id == MICROSERVICE_ID:
        role = Role(claims.get("role") or Role.ADMIN)
    else:
        role = Role(claims.get("role"))
    return CurrentUser(
        user_id=user_id,
        role=role,
        email=claims.get("email"),
        provider=claims.get("provider"),
        apps=ExtraUserData.from_dict(claims.get("extraUserData")).apps,
        name=claims.get("name"),
    )

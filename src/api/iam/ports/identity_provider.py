"""Contract of the external identity provider.

The identity provider stores user profiles under its own internal id. The
canonical ``User`` is a projection of such a profile:

    id                 <- profile.legacyId
    email              <- profile.email
    name               <- profile.displayName
    photo              <- profile.photo
    provider           <- profile.provider
    provider_id        <- profile.providerId
    role               <- profile.role
    extra_user_data    <- profile.apps
    created_at         <- created
    updated_at         <- lastUpdated

Queries are expressed in the provider's search language, produced by
``build_search_expression``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol, runtime_checkable

from iam.domain.aggregates import User
from iam.domain.value_objects import ExtraUserData, Provider, Role, UserId

PROTECTED_FIELDS = ("legacyId", "role", "apps")

_PROFILE_ATTRIBUTES = {
    "id": "legacyId",
    "name": "displayName",
}
_EXACT_MATCH_FIELDS = frozenset({"id", "provider", "providerId", "role", "apps"})


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class IdentityProviderUser:
    """A user record as returned by the identity provider."""

    id: str
    profile: Mapping[str, Any] = field(default_factory=dict)
    status: str | None = None
    created: str | None = None
    last_updated: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> IdentityProviderUser:
        """Build from the provider's JSON user object."""
        return cls(
            id=str(payload["id"]),
            profile=dict(payload.get("profile") or {}),
            status=payload.get("status"),
            created=payload.get("created"),
            last_updated=payload.get("lastUpdated"),
        )

    def missing_protected_fields(self) -> list[str]:
        """Protected fields that were never provisioned on this profile."""
        return [name for name in PROTECTED_FIELDS if self.profile.get(name) is None]

    def to_user(self) -> User:
        """Project the profile into the canonical ``User`` shape.

        Raises:
            ValueError: If the profile has no ``legacyId`` yet
        """
        legacy_id = self.profile.get("legacyId")
        if not legacy_id:
            raise ValueError(f"Identity provider user {self.id} has no legacyId")

        provider = self.profile.get("provider") or Provider.LOCAL.value
        return User(
            id=UserId(value=str(legacy_id)),
            provider=Provider(provider),
            provider_id=self.profile.get("providerId"),
            role=Role(self.profile.get("role") or Role.USER.value),
            name=self.profile.get("displayName"),
            photo=self.profile.get("photo"),
            email=self.profile.get("email"),
            extra_user_data=ExtraUserData(apps=tuple(self.profile.get("apps") or ())),
            created_at=_parse_timestamp(self.created),
            updated_at=_parse_timestamp(self.last_updated),
        )


def profile_from_user(user: User) -> dict[str, Any]:
    """Map a canonical user onto identity-provider profile attributes."""
    profile: dict[str, Any] = {
        "legacyId": user.id.value,
        "displayName": user.name,
        "photo": user.photo,
        "provider": user.provider.value,
        "providerId": user.provider_id,
        "role": user.role.value,
        "apps": list(user.extra_user_data.apps),
    }
    if user.email:
        profile["email"] = user.email
        profile["login"] = user.email
    return profile


def _quote(value: Any) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def build_search_expression(criteria: Mapping[str, Any]) -> str:
    """Translate canonical filters into an identity-provider search expression.

    ``id`` maps to ``profile.legacyId`` and ``name`` to ``profile.displayName``.
    ``id``, ``provider``, ``providerId``, ``role`` and ``apps`` match exactly
    (``eq``); every other field matches by prefix (``sw``). List values are
    OR-joined inside parentheses and distinct fields are AND-joined.

    Example:
        >>> build_search_expression({"role": "ADMIN", "apps": ["rw", "gfw"]})
        'profile.role eq "ADMIN" and (profile.apps eq "rw" or profile.apps eq "gfw")'
    """
    clauses: list[str] = []
    for name, value in criteria.items():
        if value is None or value == [] or value == ():
            continue
        attribute = f"profile.{_PROFILE_ATTRIBUTES.get(name, name)}"
        operator = "eq" if name in _EXACT_MATCH_FIELDS else "sw"
        if isinstance(value, (list, tuple, set, frozenset)):
            options = " or ".join(f"{attribute} {operator} {_quote(v)}" for v in value)
            clauses.append(f"({options})")
        else:
            clauses.append(f"{attribute} {operator} {_quote(value)}")
    return " and ".join(clauses)


@runtime_checkable
class IIdentityProviderClient(Protocol):
    """Remote user directory of the external identity provider.

    Timeouts raise ``UpstreamTimeoutError``; other failures raise
    ``UpstreamFailureError``, except the provider's "login already exists"
    cause which raises ``EmailAlreadyExistsError``.
    """

    async def list_users(
        self,
        search: str | None = None,
        limit: int | None = None,
        after: str | None = None,
        before: str | None = None,
    ) -> list[IdentityProviderUser]:
        """List users matching a search expression."""
        ...

    async def get_user(self, id_or_login: str) -> IdentityProviderUser | None:
        """Fetch a user by internal id or login (email). None when unknown."""
        ...

    async def create_user(
        self, profile: Mapping[str, Any], activate: bool = False
    ) -> IdentityProviderUser:
        """Create a user with the given profile attributes."""
        ...

    async def update_user(
        self, idp_user_id: str, profile: Mapping[str, Any]
    ) -> IdentityProviderUser:
        """Partially update profile attributes (protected fields included)."""
        ...

    async def delete_user(self, idp_user_id: str) -> None:
        """Delete a user."""
        ...

    async def exchange_authorization_code(self, code: str) -> str:
        """Redeem an authorization code and return the provider's user id."""
        ...

    async def send_password_recovery(self, email: str) -> None:
        """Ask the provider to mail a password recovery link."""
        ...

"""PostgreSQL implementation of IUserRepository.

Stores local and OAuth identities. Used when the identity backend is
``local``; otherwise ``IdentityProviderUserRepository`` takes its place.
"""

from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database import is_unique_violation
from iam.domain.aggregates import User
from iam.domain.value_objects import ExtraUserData, Page, Provider, Role, UserId
from iam.infrastructure.models import UserModel
from iam.infrastructure.observability import (
    DefaultUserRepositoryProbe,
    UserRepositoryProbe,
)
from iam.ports.exceptions import DuplicateProviderIdentityError
from iam.ports.repositories import IUserRepository, UserQuery

PROVIDER_IDENTITY_INDEX = "ix_users_provider_provider_id"


class UserRepository(IUserRepository):
    """PostgreSQL-backed repository for User aggregates.

    Writes are flushed, never committed: the calling service owns the
    transaction. The partial unique index on ``(provider, provider_id)``
    is what turns a lost reconciliation race into
    ``DuplicateProviderIdentityError``.
    """

    def __init__(
        self, session: AsyncSession, probe: UserRepositoryProbe | None = None
    ) -> None:
        """Initialize repository with database session and probe.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultUserRepositoryProbe()

    async def save(self, user: User) -> None:
        """Persist a user aggregate.

        Creates a new user or updates an existing one.

        Args:
            user: The User aggregate to persist

        Raises:
            DuplicateProviderIdentityError: If another user already holds the
                same (provider, provider_id) pair
        """
        try:
            stmt = select(UserModel).where(UserModel.id == user.id.value)
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()

            if model is None:
                model = UserModel(id=user.id.value)
                self._session.add(model)

            model.name = user.name
            model.photo = user.photo
            model.email = user.email
            model.provider = user.provider.value
            model.provider_id = user.provider_id
            model.role = user.role.value
            model.apps = list(user.extra_user_data.apps)
            model.password = user.password
            model.salt = user.salt
            model.user_token = user.user_token

            # Flush to surface the provider identity constraint now
            await self._session.flush()

        except IntegrityError as e:
            if is_unique_violation(e, PROVIDER_IDENTITY_INDEX):
                self._probe.duplicate_provider_identity(
                    user.provider.value, user.provider_id or ""
                )
                raise DuplicateProviderIdentityError(
                    f"{user.provider} identity {user.provider_id} already exists"
                ) from e
            raise

        self._probe.user_saved(user.id.value, user.provider.value)

    async def get_by_id(self, user_id: UserId) -> User | None:
        """Retrieve a user by their ID.

        Args:
            user_id: The unique identifier of the user

        Returns:
            The User aggregate, or None if not found
        """
        stmt = select(UserModel).where(UserModel.id == user_id.value)
        return await self._one(stmt, user_id.value)

    async def get_by_email(self, email: str) -> User | None:
        """Retrieve a user by email, ignoring case.

        Args:
            email: The email to search for

        Returns:
            The oldest matching User aggregate, or None if not found
        """
        stmt = (
            select(UserModel)
            .where(func.lower(UserModel.email) == email.lower())
            .order_by(UserModel.created_at)
            .limit(1)
        )
        return await self._one(stmt, email)

    async def get_local_by_email(self, email: str) -> User | None:
        """Retrieve the local user with this email, ignoring case."""
        stmt = (
            select(UserModel)
            .where(
                UserModel.provider == Provider.LOCAL.value,
                func.lower(UserModel.email) == email.lower(),
            )
            .order_by(UserModel.created_at)
            .limit(1)
        )
        return await self._one(stmt, email)

    async def get_by_provider_identity(
        self, provider: Provider, provider_id: str
    ) -> User | None:
        """Retrieve the user linked to a provider subject id."""
        stmt = select(UserModel).where(
            UserModel.provider == provider.value,
            UserModel.provider_id == provider_id,
        )
        return await self._one(stmt, f"{provider}:{provider_id}")

    async def get_by_ids(self, user_ids: list[UserId]) -> list[User]:
        """Retrieve every user whose id is in the list. Unknown ids are skipped."""
        if not user_ids:
            return []
        stmt = (
            select(UserModel)
            .where(UserModel.id.in_([uid.value for uid in user_ids]))
            .order_by(UserModel.created_at, UserModel.id)
        )
        result = await self._session.execute(stmt)
        users = [self._to_domain(model) for model in result.scalars().all()]
        self._probe.users_found(len(users))
        return users

    async def list_ids_by_role(self, role: Role) -> list[UserId]:
        """List the ids of all users holding a role."""
        stmt = (
            select(UserModel.id)
            .where(UserModel.role == role.value)
            .order_by(UserModel.created_at, UserModel.id)
        )
        result = await self._session.execute(stmt)
        return [UserId(value=row) for row in result.scalars().all()]

    async def find(self, query: UserQuery, page: Page) -> list[User]:
        """Search users.

        ``name`` and ``email`` match case-insensitively by prefix, ``apps``
        matches users holding any of the listed apps.

        Args:
            query: Filter criteria
            page: Page to return

        Returns:
            Matching users for the requested page, oldest first
        """
        stmt = select(UserModel)
        if query.ids:
            stmt = stmt.where(UserModel.id.in_(list(query.ids)))
        if query.name:
            stmt = stmt.where(UserModel.name.ilike(f"{_escape_like(query.name)}%"))
        if query.email:
            stmt = stmt.where(UserModel.email.ilike(f"{_escape_like(query.email)}%"))
        if query.provider is not None:
            stmt = stmt.where(UserModel.provider == query.provider.value)
        if query.provider_id:
            stmt = stmt.where(UserModel.provider_id == query.provider_id)
        if query.role is not None:
            stmt = stmt.where(UserModel.role == query.role.value)
        if query.apps:
            stmt = stmt.where(UserModel.apps.overlap(list(query.apps)))

        stmt = (
            stmt.order_by(UserModel.created_at, UserModel.id)
            .offset(page.offset)
            .limit(page.size)
        )
        result = await self._session.execute(stmt)
        users = [self._to_domain(model) for model in result.scalars().all()]
        self._probe.users_found(len(users))
        return users

    async def delete(self, user_id: UserId) -> bool:
        """Delete a user.

        Returns:
            True if deleted, False if not found
        """
        stmt = delete(UserModel).where(UserModel.id == user_id.value)
        result = await self._session.execute(stmt)
        await self._session.flush()
        if result.rowcount == 0:
            return False
        self._probe.user_deleted(user_id.value)
        return True

    async def _one(self, stmt, lookup: str) -> User | None:
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            self._probe.user_not_found(lookup)
            return None
        self._probe.user_retrieved(model.id)
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: UserModel) -> User:
        """Reconstitute a User aggregate from its row."""
        return User(
            id=UserId(value=model.id),
            provider=Provider(model.provider),
            role=Role(model.role),
            name=model.name,
            photo=model.photo,
            email=model.email,
            provider_id=model.provider_id,
            extra_user_data=ExtraUserData(apps=tuple(model.apps or ())),
            password=model.password,
            salt=model.salt,
            user_token=model.user_token,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input only matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

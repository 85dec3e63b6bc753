"""PostgreSQL repositories for local credential flows.

Pending sign-ups and password reset grants only exist for local users, so
these repositories are used whatever the identity backend is.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from iam.domain.aggregates import PENDING_USER_TTL, PasswordRenewal, PendingUser
from iam.domain.value_objects import ExtraUserData, Role, UserId
from iam.infrastructure.models import PasswordRenewalModel, PendingUserModel
from iam.infrastructure.observability import (
    CredentialRepositoryProbe,
    DefaultCredentialRepositoryProbe,
)
from iam.ports.repositories import IPasswordRenewalRepository, IPendingUserRepository


class PendingUserRepository(IPendingUserRepository):
    """PostgreSQL-backed repository for unconfirmed local sign-ups."""

    def __init__(
        self, session: AsyncSession, probe: CredentialRepositoryProbe | None = None
    ) -> None:
        self._session = session
        self._probe = probe or DefaultCredentialRepositoryProbe()

    async def save(self, pending_user: PendingUser) -> None:
        """Persist a pending sign-up."""
        model = PendingUserModel(
            id=pending_user.id.value,
            email=pending_user.email,
            name=pending_user.name,
            password=pending_user.password,
            salt=pending_user.salt,
            role=pending_user.role.value,
            confirmation_token=pending_user.confirmation_token,
            apps=list(pending_user.extra_user_data.apps),
            created_at=pending_user.created_at,
        )
        self._session.add(model)
        await self._session.flush()
        self._probe.pending_user_saved(pending_user.id.value)

    async def get_by_confirmation_token(self, token: str) -> PendingUser | None:
        """Retrieve the pending sign-up holding a confirmation token."""
        stmt = select(PendingUserModel).where(
            PendingUserModel.confirmation_token == token
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def get_by_email(self, email: str) -> PendingUser | None:
        """Retrieve the most recent pending sign-up for an email."""
        stmt = (
            select(PendingUserModel)
            .where(func.lower(PendingUserModel.email) == email.lower())
            .order_by(PendingUserModel.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def delete(self, pending_user_id: UserId) -> bool:
        """Delete a pending sign-up."""
        stmt = delete(PendingUserModel).where(
            PendingUserModel.id == pending_user_id.value
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        if result.rowcount == 0:
            return False
        self._probe.pending_user_deleted(pending_user_id.value)
        return True

    async def purge_expired(self, now: datetime) -> int:
        """Delete every pending sign-up older than its time-to-live."""
        stmt = delete(PendingUserModel).where(
            PendingUserModel.created_at <= now - PENDING_USER_TTL
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        self._probe.pending_users_purged(result.rowcount)
        return result.rowcount

    @staticmethod
    def _to_domain(model: PendingUserModel) -> PendingUser:
        return PendingUser(
            id=UserId(value=model.id),
            email=model.email,
            password=model.password,
            salt=model.salt,
            confirmation_token=model.confirmation_token,
            role=Role(model.role),
            name=model.name,
            extra_user_data=ExtraUserData(apps=tuple(model.apps or ())),
            created_at=model.created_at,
        )


class PasswordRenewalRepository(IPasswordRenewalRepository):
    """PostgreSQL-backed repository for password reset grants."""

    def __init__(
        self, session: AsyncSession, probe: CredentialRepositoryProbe | None = None
    ) -> None:
        self._session = session
        self._probe = probe or DefaultCredentialRepositoryProbe()

    async def save(self, renewal: PasswordRenewal) -> None:
        """Persist a reset grant."""
        self._session.add(
            PasswordRenewalModel(
                id=renewal.id,
                user_id=renewal.user_id.value,
                token=renewal.token,
                created_at=renewal.created_at,
            )
        )
        await self._session.flush()
        self._probe.renewal_saved(renewal.id, renewal.user_id.value)

    async def get_by_token(self, token: str) -> PasswordRenewal | None:
        """Retrieve a reset grant by its token."""
        stmt = select(PasswordRenewalModel).where(PasswordRenewalModel.token == token)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return PasswordRenewal(
            id=model.id,
            user_id=UserId(value=model.user_id),
            token=model.token,
            created_at=model.created_at,
        )

    async def delete(self, renewal_id: str) -> bool:
        """Delete a reset grant."""
        stmt = delete(PasswordRenewalModel).where(PasswordRenewalModel.id == renewal_id)
        result = await self._session.execute(stmt)
        await self._session.flush()
        if result.rowcount == 0:
            return False
        self._probe.renewal_deleted(renewal_id)
        return True

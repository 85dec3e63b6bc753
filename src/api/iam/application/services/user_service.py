"""User application service for IAM bounded context.

Handles local credential flows (sign-up, invitation, confirmation, login,
password reset) and administration of user records.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Iterable
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.authorization import authorize_identity_management
from iam.application.observability import DefaultUserServiceProbe, UserServiceProbe
from iam.application.security import (
    generate_password,
    generate_salt,
    generate_token,
    hash_password,
    verify_password,
)
from iam.application.services.association_service import (
    AssociationConsistencyManager,
)
from iam.application.value_objects import CurrentUser
from iam.domain.aggregates import PasswordRenewal, PendingUser, User
from iam.domain.value_objects import Page, Role, UserId, normalize_apps
from iam.ports.exceptions import (
    ConfirmationTokenNotFoundError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidRoleError,
    PasswordMismatchError,
    PermissionDeniedError,
    RenewalTokenNotFoundError,
    UserNotFoundError,
)
from iam.ports.gateways import IMailSender
from iam.ports.identity_provider import IIdentityProviderClient
from iam.ports.repositories import (
    IPasswordRenewalRepository,
    IPendingUserRepository,
    IUserRepository,
    UserQuery,
)
from infrastructure.database import transaction
from infrastructure.settings import CoreConfig, IdentityBackend


class UserService:
    """Application service for user management.

    Pending sign-ups and reset grants always live in local storage. The
    permanent user records live in whichever identity backend the
    configured ``user_repository`` talks to.
    """

    def __init__(
        self,
        user_repository: IUserRepository,
        pending_user_repository: IPendingUserRepository,
        renewal_repository: IPasswordRenewalRepository,
        mail_sender: IMailSender,
        session: AsyncSession,
        config: CoreConfig,
        identity_provider: IIdentityProviderClient | None = None,
        association_manager: AssociationConsistencyManager | None = None,
        probe: UserServiceProbe | None = None,
    ):
        """Initialize UserService with dependencies.

        Args:
            user_repository: Repository of the configured identity backend
            pending_user_repository: Store of unconfirmed sign-ups
            renewal_repository: Store of password reset grants
            mail_sender: Sends confirmation, invitation and recovery mails
            session: Database session for transaction management
            config: Immutable core configuration
            identity_provider: Identity provider client, required when the
                identity provider is the backend
            association_manager: Clears ownerships and memberships of
                deleted users
            probe: Optional domain probe for observability
        """
        self._user_repository = user_repository
        self._pending_users = pending_user_repository
        self._renewals = renewal_repository
        self._mail = mail_sender
        self._session = session
        self._config = config
        self._identity_provider = identity_provider
        self._association_manager = association_manager
        self._probe = probe or DefaultUserServiceProbe()

    async def sign_up(
        self,
        email: str,
        password: str,
        repeat_password: str | None = None,
        apps: Iterable[str] = (),
        origin_app: str | None = None,
        name: str | None = None,
    ) -> PendingUser:
        """Register a local sign-up and mail its confirmation link.

        The account only becomes usable once the link is followed. Expired
        sign-ups are purged first so their email can be registered again.

        Raises:
            PasswordMismatchError: If the repeated password differs
            EmailAlreadyExistsError: If the email is taken by a user or a
                pending sign-up
            UpstreamFailureError: If the mail could not be sent; nothing is stored
        """
        if repeat_password is not None and repeat_password != password:
            raise PasswordMismatchError("Password and Repeat password not equal")

        origin_app = origin_app or self._config.default_app
        await self.purge_expired_pending_users()
        async with transaction(self._session):
            await self._check_email_available(email)
            salt = generate_salt()
            pending = PendingUser.create(
                email=email,
                password_hash=hash_password(password, salt),
                salt=salt,
                confirmation_token=generate_token(),
                apps=normalize_apps(apps),
                name=name,
            )
            await self._pending_users.save(pending)
            await self._mail.send_confirmation(
                email, self._confirmation_url(pending.confirmation_token), origin_app
            )

        self._probe.sign_up_requested(pending.id.value, origin_app)
        return pending

    async def invite_user(
        self,
        email: str,
        actor: CurrentUser,
        role: Role = Role.USER,
        apps: Iterable[str] = (),
        name: str | None = None,
        callback_url: str | None = None,
        origin_app: str | None = None,
    ) -> PendingUser:
        """Create an account on someone's behalf with a generated password.

        The invitation mail carries the password and the confirmation link.

        Raises:
            PermissionDeniedError: If the actor may not grant the role or apps
            EmailAlreadyExistsError: If the email is taken
        """
        apps = normalize_apps(apps)
        if not actor.is_microservice and not authorize_identity_management(
            actor.role, actor.apps, apps, role
        ):
            self._probe.permission_denied(actor.user_id, "invite_user")
            raise PermissionDeniedError(
                "You are not allowed to create a user with this role or applications"
            )

        origin_app = origin_app or self._config.default_app
        password = generate_password()
        await self.purge_expired_pending_users()
        async with transaction(self._session):
            await self._check_email_available(email)
            salt = generate_salt()
            pending = PendingUser.create(
                email=email,
                password_hash=hash_password(password, salt),
                salt=salt,
                confirmation_token=generate_token(),
                role=role,
                apps=apps,
                name=name,
            )
            await self._pending_users.save(pending)
            await self._mail.send_invitation(
                email,
                password,
                self._confirmation_url(pending.confirmation_token),
                origin_app,
                callback_url=callback_url,
            )

        self._probe.user_invited(pending.id.value, role.value, actor.user_id)
        return pending

    async def confirm(self, confirmation_token: str) -> User:
        """Redeem a confirmation token and create the permanent user.

        Raises:
            ConfirmationTokenNotFoundError: If the token is unknown or expired
        """
        async with transaction(self._session):
            pending = await self._pending_users.get_by_confirmation_token(
                confirmation_token
            )
            if pending is None or pending.is_expired():
                raise ConfirmationTokenNotFoundError("Confirmation token not found")

            user = pending.promote()
            await self._user_repository.save(user)
            await self._pending_users.delete(pending.id)

        self._probe.user_confirmed(user.id.value)
        return user

    async def login(self, email: str, password: str) -> User:
        """Check a local email and password pair.

        OAuth accounts sharing the email are never considered.

        Raises:
            InvalidCredentialsError: If the pair does not match a local user
        """
        async with transaction(self._session):
            user = await self._user_repository.get_local_by_email(email)

        if user is None:
            self._probe.login_failed("unknown_email")
            raise InvalidCredentialsError("Invalid email or password")
        if not user.password:
            self._probe.login_failed("no_password")
            raise InvalidCredentialsError("Invalid email or password")
        if not verify_password(password, user.password):
            self._probe.login_failed("wrong_password")
            raise InvalidCredentialsError("Invalid email or password")

        self._probe.login_succeeded(user.id.value)
        return user

    async def request_password_reset(
        self, email: str, origin_app: str | None = None
    ) -> None:
        """Send a password recovery mail.

        With the identity provider as backend the provider runs the whole
        recovery flow itself.

        Raises:
            UserNotFoundError: If no user has this email
        """
        if self._uses_identity_provider:
            await self._identity_provider.send_password_recovery(email)
            return

        origin_app = origin_app or self._config.default_app
        async with transaction(self._session):
            user = await self._user_repository.get_by_email(email)
            if user is None:
                self._probe.user_not_found("email")
                raise UserNotFoundError(f"No user with email {email}")

            renewal = PasswordRenewal.create(user.id, generate_token())
            await self._renewals.save(renewal)
            await self._mail.send_password_recovery(
                email, self._recovery_url(renewal.token, origin_app), origin_app
            )

        self._probe.password_reset_requested(user.id.value)

    async def reset_password(
        self, token: str, password: str, repeat_password: str | None = None
    ) -> User:
        """Set a new password using a single-use reset grant.

        Raises:
            PasswordMismatchError: If the repeated password differs
            RenewalTokenNotFoundError: If the token is unknown or already used
        """
        if repeat_password is not None and repeat_password != password:
            raise PasswordMismatchError("Password and Repeat password not equal")

        async with transaction(self._session):
            renewal = await self._renewals.get_by_token(token)
            if renewal is None:
                raise RenewalTokenNotFoundError("Token expired")
            user = await self._user_repository.get_by_id(renewal.user_id)
            if user is None:
                self._probe.user_not_found("id")
                raise UserNotFoundError(f"User {renewal.user_id} not found")

            salt = generate_salt()
            user.change_password(hash_password(password, salt), salt)
            await self._user_repository.save(user)
            await self._renewals.delete(renewal.id)

        self._probe.password_reset(user.id.value)
        return user

    async def update_user(
        self,
        user_id: UserId,
        actor: CurrentUser,
        name: str | None = None,
        photo: str | None = None,
        role: Role | None = None,
        apps: Iterable[str] | None = None,
    ) -> User:
        """Update a user's profile, role or application grants.

        Anyone may change their own name and photo. Changing role or apps
        requires an ADMIN. Editing another user's profile requires the
        identity management policy to allow it.

        Raises:
            UserNotFoundError: If the user does not exist
            PermissionDeniedError: If the actor may not make the change
        """
        async with transaction(self._session):
            user = await self._require(user_id)

            if (role is not None or apps is not None) and not actor.is_admin:
                self._probe.permission_denied(actor.user_id, "update_user_grants")
                raise PermissionDeniedError("Only admins can change roles or apps")
            if (
                actor.user_id != user_id.value
                and not actor.is_admin
                and not authorize_identity_management(
                    actor.role, actor.apps, user.extra_user_data.apps, user.role
                )
            ):
                self._probe.permission_denied(actor.user_id, "update_user")
                raise PermissionDeniedError("You are not allowed to update this user")

            fields: list[str] = []
            if name is not None or photo is not None:
                user.update_profile(name=name, photo=photo)
                fields += [f for f, v in (("name", name), ("photo", photo)) if v is not None]
            if role is not None:
                user.change_role(role)
                fields.append("role")
            if apps is not None:
                user.replace_apps(apps)
                fields.append("apps")
            user.touch()
            await self._user_repository.save(user)

        self._probe.user_updated(user_id.value, fields)
        return user

    async def grant_applications(self, user_id: UserId, apps: Iterable[str]) -> User:
        """Add application grants to a user, keeping existing ones.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        async with transaction(self._session):
            user = await self._require(user_id)
            user.grant_apps(apps)
            await self._user_repository.save(user)

        self._probe.user_updated(user_id.value, ["apps"])
        return user

    async def delete_user(self, user_id: UserId) -> None:
        """Delete a user record.

        Applications the user owned directly are left orphaned and the user
        leaves every organization.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        async with transaction(self._session):
            deleted = await self._user_repository.delete(user_id)
            if deleted and self._association_manager is not None:
                await self._association_manager.clear_user_associations(user_id)
        if not deleted:
            self._probe.user_not_found("id")
            raise UserNotFoundError(f"User {user_id} not found")
        self._probe.user_deleted(user_id.value)

    async def get_user(self, user_id: UserId) -> User:
        """Retrieve a user.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        async with transaction(self._session):
            return await self._require(user_id)

    async def get_users_by_ids(self, user_ids: list[UserId]) -> list[User]:
        """Retrieve users by id, skipping unknown ids."""
        async with transaction(self._session):
            return await self._user_repository.get_by_ids(user_ids)

    async def list_ids_by_role(self, role: str) -> list[UserId]:
        """List ids of the users holding a role.

        Raises:
            InvalidRoleError: If ``role`` is not a platform role
        """
        try:
            parsed = Role(role)
        except ValueError as e:
            raise InvalidRoleError(f"Invalid role {role}") from e

        async with transaction(self._session):
            return await self._user_repository.list_ids_by_role(parsed)

    async def find_users(self, query: UserQuery, page: Page) -> list[User]:
        """Search users by the given filters."""
        async with transaction(self._session):
            return await self._user_repository.find(query, page)

    async def purge_expired_pending_users(self) -> int:
        """Remove pending sign-ups that were never confirmed in time."""
        async with transaction(self._session):
            count = await self._pending_users.purge_expired(datetime.now(UTC))
        self._probe.pending_users_purged(count)
        return count

    @property
    def _uses_identity_provider(self) -> bool:
        return (
            self._config.identity_backend == IdentityBackend.IDENTITY_PROVIDER
            and self._identity_provider is not None
        )

    async def _require(self, user_id: UserId) -> User:
        user = await self._user_repository.get_by_id(user_id)
        if user is None:
            self._probe.user_not_found("id")
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def _check_email_available(self, email: str) -> None:
        if await self._user_repository.get_by_email(email) is not None:
            raise EmailAlreadyExistsError()
        if await self._pending_users.get_by_email(email) is not None:
            raise EmailAlreadyExistsError()

    def _confirmation_url(self, token: str) -> str:
        return f"{self._config.public_url}/auth/confirm/{token}"

    def _recovery_url(self, token: str, origin_app: str) -> str:
        query = urlencode({"origin": origin_app})
        return f"{self._config.public_url}/auth/reset-password/{token}?{query}"

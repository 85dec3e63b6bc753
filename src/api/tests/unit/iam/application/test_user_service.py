"""Unit tests for UserService."""

from datetime import UTC, datetime, timedelta

import pytest
from unittest.mock import AsyncMock, create_autospec

from iam.application.security import generate_salt, hash_password
from iam.application.value_objects import CurrentUser
from iam.domain.aggregates import PasswordRenewal, PendingUser, User
from iam.domain.value_objects import ExtraUserData, Page, Provider, Role, UserId
from iam.ports.exceptions import (
    ConfirmationTokenNotFoundError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidRoleError,
    PasswordMismatchError,
    PermissionDeniedError,
    RenewalTokenNotFoundError,
    UpstreamFailureError,
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
from infrastructure.settings import CoreConfig, IdentityBackend


def _config(backend: IdentityBackend = IdentityBackend.LOCAL) -> CoreConfig:
    return CoreConfig(
        token_secret="test-secret",
        token_algorithm="HS256",
        token_expires_in_minutes=0,
        identity_backend=backend,
        public_url="http://auth.test",
        default_app="rw",
    )


@pytest.fixture
def mock_user_repository():
    repository = create_autospec(IUserRepository, instance=True)
    repository.get_by_email = AsyncMock(return_value=None)
    repository.get_local_by_email = AsyncMock(return_value=None)
    return repository


@pytest.fixture
def mock_pending_repository():
    repository = create_autospec(IPendingUserRepository, instance=True)
    repository.get_by_email = AsyncMock(return_value=None)
    repository.purge_expired = AsyncMock(return_value=0)
    return repository


@pytest.fixture
def mock_renewal_repository():
    return create_autospec(IPasswordRenewalRepository, instance=True)


@pytest.fixture
def mock_mail_sender():
    return create_autospec(IMailSender, instance=True)


@pytest.fixture
def mock_probe():
    from iam.application.observability import UserServiceProbe

    return create_autospec(UserServiceProbe, instance=True)


@pytest.fixture
def user_service(
    mock_user_repository,
    mock_pending_repository,
    mock_renewal_repository,
    mock_mail_sender,
    mock_session,
    mock_probe,
):
    """Create UserService with mock dependencies."""
    from iam.application.services.user_service import UserService

    return UserService(
        user_repository=mock_user_repository,
        pending_user_repository=mock_pending_repository,
        renewal_repository=mock_renewal_repository,
        mail_sender=mock_mail_sender,
        session=mock_session,
        config=_config(),
        probe=mock_probe,
    )


def _local_user(password: str = "s3cret", **kwargs) -> User:
    salt = generate_salt()
    return User(
        id=UserId.generate(),
        provider=Provider.LOCAL,
        email="ada@example.com",
        password=hash_password(password, salt),
        salt=salt,
        **kwargs,
    )


class TestUserServiceInit:
    """Tests for UserService initialization."""

    def test_uses_default_probe_when_not_provided(
        self,
        mock_user_repository,
        mock_pending_repository,
        mock_renewal_repository,
        mock_mail_sender,
        mock_session,
    ):
        from iam.application.services.user_service import UserService

        service = UserService(
            user_repository=mock_user_repository,
            pending_user_repository=mock_pending_repository,
            renewal_repository=mock_renewal_repository,
            mail_sender=mock_mail_sender,
            session=mock_session,
            config=_config(),
        )
        assert service._probe is not None


class TestSignUp:
    """Tests for local sign-up."""

    @pytest.mark.asyncio
    async def test_stores_pending_user_and_mails_link(
        self, user_service, mock_pending_repository, mock_mail_sender, mock_probe
    ):
        pending = await user_service.sign_up(
            "new@example.com", "pw", repeat_password="pw", apps=["GFW"], origin_app="gfw"
        )

        assert pending.email == "new@example.com"
        assert pending.role == Role.USER
        assert pending.extra_user_data.apps == ("gfw",)
        assert pending.password != "pw"
        mock_pending_repository.save.assert_called_once_with(pending)
        mock_mail_sender.send_confirmation.assert_called_once_with(
            "new@example.com",
            f"http://auth.test/auth/confirm/{pending.confirmation_token}",
            "gfw",
        )
        mock_probe.sign_up_requested.assert_called_once_with(pending.id.value, "gfw")

    @pytest.mark.asyncio
    async def test_expired_sign_ups_are_purged_first(
        self, user_service, mock_pending_repository
    ):
        await user_service.sign_up("new@example.com", "pw")

        mock_pending_repository.purge_expired.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_defaults_origin_app(self, user_service, mock_mail_sender):
        await user_service.sign_up("new@example.com", "pw")
        assert mock_mail_sender.send_confirmation.call_args[0][2] == "rw"

    @pytest.mark.asyncio
    async def test_password_mismatch(self, user_service, mock_pending_repository):
        with pytest.raises(PasswordMismatchError):
            await user_service.sign_up("new@example.com", "pw", repeat_password="other")
        mock_pending_repository.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_email_taken_by_user(self, user_service, mock_user_repository):
        mock_user_repository.get_by_email = AsyncMock(return_value=_local_user())

        with pytest.raises(EmailAlreadyExistsError):
            await user_service.sign_up("ada@example.com", "pw")

    @pytest.mark.asyncio
    async def test_email_taken_by_pending_user(self, user_service, mock_pending_repository):
        mock_pending_repository.get_by_email = AsyncMock(
            return_value=PendingUser.create(
                email="ada@example.com",
                password_hash="h",
                salt="s",
                confirmation_token="t",
            )
        )

        with pytest.raises(EmailAlreadyExistsError):
            await user_service.sign_up("ada@example.com", "pw")

    @pytest.mark.asyncio
    async def test_mail_failure_propagates(self, user_service, mock_mail_sender):
        mock_mail_sender.send_confirmation = AsyncMock(
            side_effect=UpstreamFailureError("mail down")
        )

        with pytest.raises(UpstreamFailureError):
            await user_service.sign_up("new@example.com", "pw")


class TestInviteUser:
    """Tests for creating accounts on someone's behalf."""

    @pytest.mark.asyncio
    async def test_manager_invites_user_within_apps(self, user_service, mock_mail_sender):
        manager = CurrentUser(
            user_id=UserId.generate().value, role=Role.MANAGER, apps=("rw",)
        )

        pending = await user_service.invite_user(
            "new@example.com", manager, apps=["rw"], callback_url="http://cb"
        )

        args, kwargs = mock_mail_sender.send_invitation.call_args
        assert args[0] == "new@example.com"
        assert len(args[1]) == 16
        assert args[2].endswith(pending.confirmation_token)
        assert kwargs == {"callback_url": "http://cb"}

    @pytest.mark.asyncio
    async def test_manager_cannot_invite_admin(self, user_service, mock_probe):
        manager = CurrentUser(user_id=UserId.generate().value, role=Role.MANAGER)

        with pytest.raises(PermissionDeniedError):
            await user_service.invite_user("new@example.com", manager, role=Role.ADMIN)
        mock_probe.permission_denied.assert_called_once_with(manager.user_id, "invite_user")

    @pytest.mark.asyncio
    async def test_microservice_may_invite_anyone(self, user_service, microservice_actor):
        pending = await user_service.invite_user(
            "new@example.com", microservice_actor, role=Role.SUPERADMIN
        )
        assert pending.role == Role.SUPERADMIN


class TestConfirm:
    """Tests for redeeming confirmation tokens."""

    @pytest.mark.asyncio
    async def test_promotes_pending_user(
        self, user_service, mock_pending_repository, mock_user_repository
    ):
        pending = PendingUser.create(
            email="new@example.com", password_hash="h", salt="s", confirmation_token="t"
        )
        mock_pending_repository.get_by_confirmation_token = AsyncMock(return_value=pending)

        user = await user_service.confirm("t")

        assert user.id == pending.id
        mock_user_repository.save.assert_called_once_with(user)
        mock_pending_repository.delete.assert_called_once_with(pending.id)

    @pytest.mark.asyncio
    async def test_unknown_token(self, user_service, mock_pending_repository):
        mock_pending_repository.get_by_confirmation_token = AsyncMock(return_value=None)

        with pytest.raises(ConfirmationTokenNotFoundError):
            await user_service.confirm("nope")

    @pytest.mark.asyncio
    async def test_expired_token(self, user_service, mock_pending_repository, mock_user_repository):
        pending = PendingUser.create(
            email="new@example.com", password_hash="h", salt="s", confirmation_token="t"
        )
        pending.created_at = datetime.now(UTC) - timedelta(days=8)
        mock_pending_repository.get_by_confirmation_token = AsyncMock(return_value=pending)

        with pytest.raises(ConfirmationTokenNotFoundError):
            await user_service.confirm("t")
        mock_user_repository.save.assert_not_called()


class TestLogin:
    """Tests for local email/password login."""

    @pytest.mark.asyncio
    async def test_valid_credentials(self, user_service, mock_user_repository, mock_probe):
        user = _local_user()
        mock_user_repository.get_local_by_email = AsyncMock(return_value=user)

        assert await user_service.login("ada@example.com", "s3cret") is user
        mock_probe.login_succeeded.assert_called_once_with(user.id.value)

    @pytest.mark.asyncio
    async def test_wrong_password(self, user_service, mock_user_repository, mock_probe):
        mock_user_repository.get_local_by_email = AsyncMock(return_value=_local_user())

        with pytest.raises(InvalidCredentialsError):
            await user_service.login("ada@example.com", "wrong")
        mock_probe.login_failed.assert_called_once_with("wrong_password")

    @pytest.mark.asyncio
    async def test_unknown_email(self, user_service, mock_probe):
        with pytest.raises(InvalidCredentialsError):
            await user_service.login("ghost@example.com", "pw")
        mock_probe.login_failed.assert_called_once_with("unknown_email")

    @pytest.mark.asyncio
    async def test_oauth_account_with_same_email_is_ignored(
        self, user_service, mock_user_repository
    ):
        local = _local_user()
        mock_user_repository.get_by_email = AsyncMock(
            return_value=User(
                id=UserId.generate(), provider=Provider.GOOGLE, email="ada@example.com"
            )
        )
        mock_user_repository.get_local_by_email = AsyncMock(return_value=local)

        assert await user_service.login("ada@example.com", "s3cret") is local
        mock_user_repository.get_local_by_email.assert_called_once_with(
            "ada@example.com"
        )
        mock_user_repository.get_by_email.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_oauth_account_cannot_use_password(
        self, user_service, mock_user_repository, mock_probe
    ):
        mock_user_repository.get_by_email = AsyncMock(
            return_value=User(
                id=UserId.generate(), provider=Provider.GOOGLE, email="ada@example.com"
            )
        )

        with pytest.raises(InvalidCredentialsError):
            await user_service.login("ada@example.com", "pw")
        mock_probe.login_failed.assert_called_once_with("unknown_email")


class TestPasswordReset:
    """Tests for password recovery."""

    @pytest.mark.asyncio
    async def test_request_stores_grant_and_mails_link(
        self, user_service, mock_user_repository, mock_renewal_repository, mock_mail_sender
    ):
        user = _local_user()
        mock_user_repository.get_by_email = AsyncMock(return_value=user)

        await user_service.request_password_reset("ada@example.com", origin_app="gfw")

        renewal = mock_renewal_repository.save.call_args[0][0]
        assert renewal.user_id == user.id
        mock_mail_sender.send_password_recovery.assert_called_once_with(
            "ada@example.com",
            f"http://auth.test/auth/reset-password/{renewal.token}?origin=gfw",
            "gfw",
        )

    @pytest.mark.asyncio
    async def test_request_for_unknown_email(self, user_service):
        with pytest.raises(UserNotFoundError):
            await user_service.request_password_reset("ghost@example.com")

    @pytest.mark.asyncio
    async def test_identity_provider_runs_recovery(
        self,
        mock_user_repository,
        mock_pending_repository,
        mock_renewal_repository,
        mock_mail_sender,
        mock_session,
    ):
        from iam.application.services.user_service import UserService

        client = create_autospec(IIdentityProviderClient, instance=True)
        service = UserService(
            user_repository=mock_user_repository,
            pending_user_repository=mock_pending_repository,
            renewal_repository=mock_renewal_repository,
            mail_sender=mock_mail_sender,
            session=mock_session,
            config=_config(IdentityBackend.IDENTITY_PROVIDER),
            identity_provider=client,
        )

        await service.request_password_reset("ada@example.com")

        client.send_password_recovery.assert_called_once_with("ada@example.com")
        mock_mail_sender.send_password_recovery.assert_not_called()

    @pytest.mark.asyncio
    async def test_reset_is_single_use(
        self, user_service, mock_user_repository, mock_renewal_repository
    ):
        user = _local_user()
        renewal = PasswordRenewal.create(user.id, "tok")
        mock_renewal_repository.get_by_token = AsyncMock(return_value=renewal)
        mock_user_repository.get_by_id = AsyncMock(return_value=user)

        await user_service.reset_password("tok", "n3w", repeat_password="n3w")

        mock_renewal_repository.delete.assert_called_once_with(renewal.id)
        mock_user_repository.save.assert_called_once_with(user)

    @pytest.mark.asyncio
    async def test_reset_with_unknown_token(self, user_service, mock_renewal_repository):
        mock_renewal_repository.get_by_token = AsyncMock(return_value=None)

        with pytest.raises(RenewalTokenNotFoundError):
            await user_service.reset_password("tok", "n3w")

    @pytest.mark.asyncio
    async def test_reset_password_mismatch(self, user_service, mock_renewal_repository):
        with pytest.raises(PasswordMismatchError):
            await user_service.reset_password("tok", "a", repeat_password="b")
        mock_renewal_repository.get_by_token.assert_not_called()


class TestUpdateUser:
    """Tests for profile and grant changes."""

    @pytest.mark.asyncio
    async def test_self_service_profile_update(
        self, user_service, mock_user_repository, mock_probe
    ):
        user = _local_user(name="Ada")
        actor = CurrentUser(user_id=user.id.value, role=Role.USER)
        mock_user_repository.get_by_id = AsyncMock(return_value=user)

        updated = await user_service.update_user(user.id, actor, name="Ada L.")

        assert updated.name == "Ada L."
        mock_probe.user_updated.assert_called_once_with(user.id.value, ["name"])

    @pytest.mark.asyncio
    async def test_non_admin_cannot_change_role(self, user_service, mock_user_repository):
        user = _local_user()
        actor = CurrentUser(user_id=user.id.value, role=Role.MANAGER)
        mock_user_repository.get_by_id = AsyncMock(return_value=user)

        with pytest.raises(PermissionDeniedError):
            await user_service.update_user(user.id, actor, role=Role.ADMIN)

    @pytest.mark.asyncio
    async def test_admin_replaces_apps(self, user_service, mock_user_repository, admin_actor):
        user = _local_user(extra_user_data=ExtraUserData(apps=("rw",)))
        mock_user_repository.get_by_id = AsyncMock(return_value=user)

        updated = await user_service.update_user(
            user.id, admin_actor, role=Role.MANAGER, apps=["gfw"]
        )

        assert updated.role == Role.MANAGER
        assert updated.extra_user_data.apps == ("gfw",)

    @pytest.mark.asyncio
    async def test_user_cannot_edit_someone_else(
        self, user_service, mock_user_repository, user_actor
    ):
        user = _local_user()
        mock_user_repository.get_by_id = AsyncMock(return_value=user)

        with pytest.raises(PermissionDeniedError):
            await user_service.update_user(user.id, user_actor, name="Hacked")

    @pytest.mark.asyncio
    async def test_unknown_user(self, user_service, mock_user_repository, admin_actor):
        mock_user_repository.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(UserNotFoundError):
            await user_service.update_user(UserId.generate(), admin_actor, name="x")

    @pytest.mark.asyncio
    async def test_grant_applications_keeps_existing(
        self, user_service, mock_user_repository
    ):
        user = _local_user(extra_user_data=ExtraUserData(apps=("rw",)))
        mock_user_repository.get_by_id = AsyncMock(return_value=user)

        updated = await user_service.grant_applications(user.id, ["prep"])

        assert updated.extra_user_data.apps == ("rw", "prep")


class TestQueries:
    """Tests for lookups and maintenance."""

    @pytest.mark.asyncio
    async def test_list_ids_by_role(self, user_service, mock_user_repository):
        ids = [UserId.generate()]
        mock_user_repository.list_ids_by_role = AsyncMock(return_value=ids)

        assert await user_service.list_ids_by_role("ADMIN") == ids
        mock_user_repository.list_ids_by_role.assert_called_once_with(Role.ADMIN)

    @pytest.mark.asyncio
    async def test_list_ids_by_invalid_role(self, user_service):
        with pytest.raises(InvalidRoleError):
            await user_service.list_ids_by_role("OVERLORD")

    @pytest.mark.asyncio
    async def test_find_users_passes_query(self, user_service, mock_user_repository):
        query = UserQuery(role=Role.USER, apps=("rw",))
        page = Page(number=2, size=5)
        mock_user_repository.find = AsyncMock(return_value=[])

        await user_service.find_users(query, page)

        mock_user_repository.find.assert_called_once_with(query, page)

    @pytest.mark.asyncio
    async def test_delete_unknown_user(self, user_service, mock_user_repository):
        mock_user_repository.delete = AsyncMock(return_value=False)

        with pytest.raises(UserNotFoundError):
            await user_service.delete_user(UserId.generate())

    @pytest.mark.asyncio
    async def test_delete_user_clears_associations(
        self,
        mock_user_repository,
        mock_pending_repository,
        mock_renewal_repository,
        mock_mail_sender,
        mock_session,
        mock_probe,
    ):
        from iam.application.services import AssociationConsistencyManager
        from iam.application.services.user_service import UserService

        manager = AsyncMock(spec=AssociationConsistencyManager)
        service = UserService(
            user_repository=mock_user_repository,
            pending_user_repository=mock_pending_repository,
            renewal_repository=mock_renewal_repository,
            mail_sender=mock_mail_sender,
            session=mock_session,
            config=_config(),
            association_manager=manager,
            probe=mock_probe,
        )
        mock_user_repository.delete = AsyncMock(return_value=True)
        user_id = UserId.generate()

        await service.delete_user(user_id)

        manager.clear_user_associations.assert_awaited_once_with(user_id)
        mock_probe.user_deleted.assert_called_once_with(user_id.value)

    @pytest.mark.asyncio
    async def test_purge_expired_pending_users(
        self, user_service, mock_pending_repository, mock_probe
    ):
        mock_pending_repository.purge_expired = AsyncMock(return_value=3)

        assert await user_service.purge_expired_pending_users() == 3
        mock_probe.pending_users_purged.assert_called_once_with(3)

"""Unit tests for IAM aggregates."""

from datetime import UTC, datetime, timedelta

import pytest

from iam.domain.aggregates import (
    DELETION_FLAGS,
    Application,
    Deletion,
    Organization,
    PasswordRenewal,
    PendingUser,
    User,
)
from iam.domain.profile import ProviderProfile
from iam.domain.value_objects import (
    ApplicationId,
    DeletionStatus,
    ExtraUserData,
    OrganizationId,
    OrganizationMembership,
    Provider,
    Role,
    UserId,
)


class TestUser:
    """Tests for the User aggregate."""

    def test_from_provider_profile(self):
        """First OAuth login creates a plain USER without app grants."""
        profile = ProviderProfile(
            provider=Provider.GOOGLE,
            provider_id="g-1",
            name="Ada",
            photo="ada.png",
            email="ada@example.com",
        )

        user = User.from_provider_profile(profile)

        assert user.provider == Provider.GOOGLE
        assert user.provider_id == "g-1"
        assert user.email == "ada@example.com"
        assert user.role == Role.USER
        assert user.extra_user_data.apps == ()
        assert not user.is_local

    def test_from_provider_profile_uses_explicit_id(self):
        user_id = UserId.generate()
        profile = ProviderProfile(provider=Provider.APPLE, provider_id="a-1")

        assert User.from_provider_profile(profile, user_id=user_id).id == user_id

    def test_refresh_email_overwrites_when_disclosed(self):
        user = User(id=UserId.generate(), provider=Provider.GOOGLE, email="old@x.io")

        assert user.refresh_email("new@x.io") is True
        assert user.email == "new@x.io"

    def test_refresh_email_keeps_value_when_absent(self):
        """A provider that withholds the email never clears the stored one."""
        user = User(id=UserId.generate(), provider=Provider.GOOGLE, email="old@x.io")

        assert user.refresh_email(None) is False
        assert user.refresh_email("old@x.io") is False
        assert user.email == "old@x.io"

    def test_update_profile_ignores_none(self):
        user = User(id=UserId.generate(), provider=Provider.LOCAL, name="A", photo="a")

        user.update_profile(name=None, photo="b")

        assert user.name == "A"
        assert user.photo == "b"

    def test_replace_and_grant_apps(self):
        user = User(
            id=UserId.generate(),
            provider=Provider.LOCAL,
            extra_user_data=ExtraUserData(apps=("rw",)),
        )

        user.grant_apps(["GFW"])
        assert user.extra_user_data.apps == ("rw", "gfw")

        user.replace_apps(["prep"])
        assert user.extra_user_data.apps == ("prep",)

    def test_identity_equality(self):
        user_id = UserId.generate()
        first = User(id=user_id, provider=Provider.LOCAL, name="A")
        second = User(id=user_id, provider=Provider.GOOGLE, name="B")

        assert first == second
        assert len({first, second}) == 1

    def test_record_token(self):
        user = User(id=UserId.generate(), provider=Provider.LOCAL)
        user.record_token("tok")
        assert user.user_token == "tok"


class TestPendingUser:
    """Tests for unconfirmed local sign-ups."""

    def _pending(self, **kwargs) -> PendingUser:
        return PendingUser.create(
            email="new@example.com",
            password_hash="hash",
            salt="salt",
            confirmation_token="token",
            **kwargs,
        )

    def test_expires_after_seven_days(self):
        pending = self._pending()
        assert pending.expires_at == pending.created_at + timedelta(days=7)
        assert not pending.is_expired(pending.created_at + timedelta(days=6))
        assert pending.is_expired(pending.created_at + timedelta(days=7))

    def test_promote_keeps_id_and_credentials(self):
        pending = self._pending(role=Role.MANAGER, apps=("RW",), name="New")

        user = pending.promote()

        assert user.id == pending.id
        assert user.provider == Provider.LOCAL
        assert user.role == Role.MANAGER
        assert user.extra_user_data.apps == ("rw",)
        assert user.password == "hash"
        assert user.salt == "salt"


class TestApplication:
    """Tests for the Application aggregate."""

    def _app(self) -> Application:
        return Application.create(name="Map", api_key_id="k1", api_key_value="v1")

    def test_new_application_is_orphaned(self):
        app = self._app()
        assert app.is_orphaned
        assert not app.has_single_owner

    def test_single_owner(self):
        app = self._app()
        app.user_id = UserId.generate()
        assert app.has_single_owner
        assert app.is_owned_by(app.user_id)
        assert not app.is_owned_by(UserId.generate())

    def test_both_owners_is_not_single_owner(self):
        app = self._app()
        app.user_id = UserId.generate()
        app.organization_id = OrganizationId.generate()
        assert not app.has_single_owner

    def test_rotate_api_key(self):
        app = self._app()
        app.rotate_api_key("k2", "v2")
        assert (app.api_key_id, app.api_key_value) == ("k2", "v2")


class TestOrganization:
    def test_links_and_members(self):
        org = Organization.create(name="Acme")
        app_id = ApplicationId.generate()
        member = UserId.generate()
        org.application_ids.append(app_id)
        org.members.append(OrganizationMembership(user_id=member))

        assert org.links_application(app_id)
        assert not org.links_application(ApplicationId.generate())
        assert org.has_member(member)
        assert not org.has_member(UserId.generate())


class TestDeletion:
    """Tests for the Deletion aggregate."""

    def test_defaults(self):
        deletion = Deletion.create(user_id=UserId.generate(), requestor_user_id=UserId.generate())

        assert deletion.status == DeletionStatus.PENDING
        assert set(deletion.flags()) == set(DELETION_FLAGS)
        assert not any(deletion.flags().values())

    def test_create_with_flags(self):
        deletion = Deletion.create(
            user_id=UserId.generate(),
            requestor_user_id=UserId.generate(),
            flags={"datasets_deleted": True},
        )
        assert deletion.datasets_deleted is True

    def test_unknown_flag_rejected(self):
        deletion = Deletion.create(user_id=UserId.generate(), requestor_user_id=UserId.generate())
        with pytest.raises(ValueError, match="Unknown deletion flags: bogus"):
            deletion.apply_flags({"bogus": True})

    def test_change_status(self):
        deletion = Deletion.create(user_id=UserId.generate(), requestor_user_id=UserId.generate())
        before = deletion.updated_at
        deletion.change_status(DeletionStatus.DONE)
        assert deletion.status == DeletionStatus.DONE
        assert deletion.updated_at >= before


class TestPasswordRenewal:
    def test_create(self):
        user_id = UserId.generate()
        renewal = PasswordRenewal.create(user_id=user_id, token="abc")
        assert renewal.user_id == user_id
        assert renewal.token == "abc"
        assert renewal.created_at <= datetime.now(UTC)

"""Unit tests for the identity management policy."""

import pytest

from iam.application.authorization import authorize_identity_management
from iam.domain.value_objects import Role


class TestAuthorizeIdentityManagement:
    """Tests for who may manage which identities."""

    @pytest.mark.parametrize("actor_role", [Role.ADMIN, Role.SUPERADMIN])
    @pytest.mark.parametrize("target_role", list(Role))
    def test_admins_manage_anyone(self, actor_role, target_role):
        assert authorize_identity_management(actor_role, [], ["any"], target_role)

    def test_manager_manages_users_within_own_apps(self):
        assert authorize_identity_management(
            Role.MANAGER, ["rw", "gfw"], ["RW"], Role.USER
        )

    def test_manager_cannot_grant_foreign_apps(self):
        assert not authorize_identity_management(
            Role.MANAGER, ["rw"], ["rw", "prep"], Role.USER
        )

    @pytest.mark.parametrize("target_role", [Role.MANAGER, Role.ADMIN, Role.SUPERADMIN])
    def test_manager_cannot_manage_elevated_roles(self, target_role):
        assert not authorize_identity_management(Role.MANAGER, ["rw"], ["rw"], target_role)

    def test_manager_may_create_user_without_apps(self):
        assert authorize_identity_management(Role.MANAGER, [], [], Role.USER)

    def test_user_cannot_manage(self):
        assert not authorize_identity_management(Role.USER, ["rw"], [], Role.USER)

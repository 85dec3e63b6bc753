"""Unit tests for AssociationConsistencyManager.

Scenarios run against in-memory join rows so the mutual exclusion between
organization and user ownership can be observed directly.
"""

import pytest

from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    OrganizationRole,
    UserId,
)
from iam.ports.exceptions import (
    ApplicationNotFoundError,
    OrganizationNotFoundError,
    UserNotFoundError,
)


class TestSetApplicationOrganization:
    """Tests for making an organization the sole owner."""

    @pytest.mark.asyncio
    async def test_replaces_user_owner(
        self, association_manager, associations, applications, make_application, make_organization
    ):
        """Linking an organization removes the existing user link."""
        app = await make_application()
        org = await make_organization()
        await associations.link_application_to_user(app.id, UserId.generate())

        await association_manager.set_application_organization(app.id, org.id)

        stored = await applications.get_by_id(app.id)
        assert stored.organization_id == org.id
        assert stored.user_id is None
        assert stored.has_single_owner

    @pytest.mark.asyncio
    async def test_is_idempotent(
        self, association_manager, associations, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()

        await association_manager.set_application_organization(app.id, org.id)
        await association_manager.set_application_organization(app.id, org.id)

        assert associations.app_orgs == [(app.id, org.id)]

    @pytest.mark.asyncio
    async def test_none_leaves_application_orphaned(
        self, association_manager, associations, applications, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()
        await association_manager.set_application_organization(app.id, org.id)

        await association_manager.set_application_organization(app.id, None)

        assert (await applications.get_by_id(app.id)).is_orphaned

    @pytest.mark.asyncio
    async def test_unknown_application_raises(self, association_manager, make_organization):
        org = await make_organization()

        with pytest.raises(ApplicationNotFoundError):
            await association_manager.set_application_organization(
                ApplicationId.generate(), org.id
            )

    @pytest.mark.asyncio
    async def test_unknown_organization_raises_without_unlinking(
        self, association_manager, associations, make_application
    ):
        """Validation happens before any join row is touched."""
        app = await make_application()
        owner = UserId.generate()
        await associations.link_application_to_user(app.id, owner)

        with pytest.raises(OrganizationNotFoundError):
            await association_manager.set_application_organization(
                app.id, OrganizationId.generate()
            )

        assert associations.app_users == [(app.id, owner)]

    @pytest.mark.asyncio
    async def test_reports_owner_change(
        self, association_manager, association_probe, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()

        await association_manager.set_application_organization(app.id, org.id)

        association_probe.application_owner_changed.assert_called_once_with(
            app.id.value, "organization", org.id.value
        )


class TestSetApplicationUser:
    """Tests for making a user the sole owner."""

    @pytest.mark.asyncio
    async def test_replaces_organization_owner(
        self,
        association_manager,
        applications,
        make_application,
        make_organization,
        make_user,
    ):
        """Linking a user removes the existing organization link."""
        app = await make_application()
        org = await make_organization()
        await association_manager.set_application_organization(app.id, org.id)
        user_id = make_user()

        await association_manager.set_application_user(app.id, user_id)

        stored = await applications.get_by_id(app.id)
        assert stored.user_id == user_id
        assert stored.organization_id is None

    @pytest.mark.asyncio
    async def test_replaces_previous_user(
        self, association_manager, associations, make_application, make_user
    ):
        app = await make_application()
        await association_manager.set_application_user(app.id, make_user())
        new_owner = make_user()

        await association_manager.set_application_user(app.id, new_owner)

        assert associations.app_users == [(app.id, new_owner)]

    @pytest.mark.asyncio
    async def test_none_clears_owner(
        self, association_manager, associations, make_application, make_user
    ):
        app = await make_application()
        await association_manager.set_application_user(app.id, make_user())

        await association_manager.set_application_user(app.id, None)

        assert associations.app_users == []

    @pytest.mark.asyncio
    async def test_unknown_application_raises(self, association_manager):
        with pytest.raises(ApplicationNotFoundError):
            await association_manager.set_application_user(
                ApplicationId.generate(), UserId.generate()
            )

    @pytest.mark.asyncio
    async def test_unknown_user_raises_without_unlinking(
        self, association_manager, associations, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()
        await association_manager.set_application_organization(app.id, org.id)

        with pytest.raises(UserNotFoundError):
            await association_manager.set_application_user(app.id, UserId.generate())

        assert associations.app_orgs == [(app.id, org.id)]
        assert associations.app_users == []


class TestSetOrganizationApplications:
    """Tests for replacing the application set of an organization."""

    @pytest.mark.asyncio
    async def test_takes_application_from_other_organization(
        self,
        association_manager,
        organizations,
        make_application,
        make_organization,
    ):
        """The previous owner loses only the moved application."""
        shared = await make_application("shared")
        sibling = await make_application("sibling")
        previous = await make_organization("previous")
        target = await make_organization("target")
        await association_manager.set_organization_applications(
            previous.id, [shared.id, sibling.id]
        )

        await association_manager.set_organization_applications(target.id, [shared.id])

        assert (await organizations.get_by_id(target.id)).application_ids == [shared.id]
        assert (await organizations.get_by_id(previous.id)).application_ids == [
            sibling.id
        ]

    @pytest.mark.asyncio
    async def test_removes_applications_missing_from_new_set(
        self, association_manager, organizations, make_application, make_organization
    ):
        kept = await make_application("kept")
        dropped = await make_application("dropped")
        org = await make_organization()
        await association_manager.set_organization_applications(
            org.id, [kept.id, dropped.id]
        )

        await association_manager.set_organization_applications(org.id, [kept.id])

        assert (await organizations.get_by_id(org.id)).application_ids == [kept.id]

    @pytest.mark.asyncio
    async def test_strips_user_owners(
        self,
        association_manager,
        applications,
        make_application,
        make_organization,
        make_user,
    ):
        app = await make_application()
        org = await make_organization()
        await association_manager.set_application_user(app.id, make_user())

        await association_manager.set_organization_applications(org.id, [app.id])

        stored = await applications.get_by_id(app.id)
        assert stored.organization_id == org.id
        assert stored.user_id is None

    @pytest.mark.asyncio
    async def test_repeating_the_call_keeps_link_order(
        self, association_manager, associations, make_application, make_organization
    ):
        """Existing links are not deleted and re-inserted."""
        first = await make_application("first")
        second = await make_application("second")
        org = await make_organization()
        await association_manager.set_organization_applications(
            org.id, [first.id, second.id]
        )
        snapshot = list(associations.app_orgs)

        await association_manager.set_organization_applications(
            org.id, [second.id, first.id]
        )

        assert associations.app_orgs == snapshot

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_collapsed(
        self, association_manager, associations, association_probe, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()

        await association_manager.set_organization_applications(org.id, [app.id, app.id])

        assert associations.app_orgs == [(app.id, org.id)]
        association_probe.organization_applications_replaced.assert_called_once_with(
            org.id.value, 1, 0
        )

    @pytest.mark.asyncio
    async def test_empty_set_unlinks_everything(
        self, association_manager, associations, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()
        await association_manager.set_organization_applications(org.id, [app.id])

        await association_manager.set_organization_applications(org.id, [])

        assert associations.app_orgs == []

    @pytest.mark.asyncio
    async def test_unknown_application_aborts_before_changes(
        self, association_manager, associations, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()
        await association_manager.set_organization_applications(org.id, [app.id])
        missing = ApplicationId.generate()

        with pytest.raises(ApplicationNotFoundError, match=missing.value):
            await association_manager.set_organization_applications(org.id, [missing])

        assert associations.app_orgs == [(app.id, org.id)]

    @pytest.mark.asyncio
    async def test_unknown_organization_raises(self, association_manager):
        with pytest.raises(OrganizationNotFoundError):
            await association_manager.set_organization_applications(
                OrganizationId.generate(), []
            )

    @pytest.mark.asyncio
    async def test_reports_moved_count(
        self, association_manager, association_probe, make_application, make_organization
    ):
        app = await make_application()
        previous = await make_organization("previous")
        target = await make_organization("target")
        await association_manager.set_organization_applications(previous.id, [app.id])
        association_probe.reset_mock()

        await association_manager.set_organization_applications(target.id, [app.id])

        association_probe.organization_applications_replaced.assert_called_once_with(
            target.id.value, 1, 1
        )


class TestSetOrganizationMembers:
    """Tests for replacing organization members."""

    @pytest.mark.asyncio
    async def test_replaces_members(
        self, association_manager, organizations, make_organization
    ):
        org = await make_organization()
        old = UserId.generate()
        new = UserId.generate()
        await association_manager.set_organization_members(
            org.id, [OrganizationMembership(user_id=old)]
        )

        await association_manager.set_organization_members(
            org.id, [OrganizationMembership(user_id=new, role=OrganizationRole.ADMIN)]
        )

        stored = await organizations.get_by_id(org.id)
        assert not stored.has_member(old)
        assert stored.members == [
            OrganizationMembership(user_id=new, role=OrganizationRole.ADMIN)
        ]

    @pytest.mark.asyncio
    async def test_first_role_wins_for_duplicates(
        self, association_manager, organizations, make_organization
    ):
        org = await make_organization()
        user_id = UserId.generate()

        await association_manager.set_organization_members(
            org.id,
            [
                OrganizationMembership(user_id=user_id, role=OrganizationRole.ADMIN),
                OrganizationMembership(user_id=user_id, role=OrganizationRole.MEMBER),
            ],
        )

        members = (await organizations.get_by_id(org.id)).members
        assert len(members) == 1
        assert members[0].is_admin()

    @pytest.mark.asyncio
    async def test_unknown_organization_raises(self, association_manager):
        with pytest.raises(OrganizationNotFoundError):
            await association_manager.set_organization_members(
                OrganizationId.generate(), []
            )


class TestClearingAndOrphans:
    """Tests for cascading cleanup and orphan detection."""

    @pytest.mark.asyncio
    async def test_clear_application_associations(
        self, association_manager, associations, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()
        await association_manager.set_application_organization(app.id, org.id)

        await association_manager.clear_application_associations(app.id)

        assert associations.app_orgs == []
        assert associations.app_users == []

    @pytest.mark.asyncio
    async def test_clear_organization_associations_orphans_its_apps(
        self, association_manager, associations, make_application, make_organization
    ):
        app = await make_application()
        org = await make_organization()
        await association_manager.set_organization_applications(org.id, [app.id])
        await association_manager.set_organization_members(
            org.id, [OrganizationMembership(user_id=UserId.generate())]
        )

        await association_manager.clear_organization_associations(org.id)

        assert associations.members == []
        assert await association_manager.find_orphans() == [app.id]

    @pytest.mark.asyncio
    async def test_find_orphans_skips_owned_applications(
        self, association_manager, association_probe, make_application, make_user
    ):
        owned = await make_application("owned")
        orphan = await make_application("orphan")
        await association_manager.set_application_user(owned.id, make_user())

        assert await association_manager.find_orphans() == [orphan.id]
        association_probe.orphans_found.assert_called_once_with(1)

    @pytest.mark.asyncio
    async def test_clear_user_associations_keeps_other_members(
        self,
        association_manager,
        associations,
        association_probe,
        make_application,
        make_organization,
        make_user,
    ):
        leaving = make_user()
        staying = OrganizationMembership(
            user_id=UserId.generate(), role=OrganizationRole.ADMIN
        )
        app = await make_application()
        org = await make_organization()
        await association_manager.set_application_user(app.id, leaving)
        await association_manager.set_organization_members(
            org.id, [OrganizationMembership(user_id=leaving), staying]
        )

        await association_manager.clear_user_associations(leaving)

        assert associations.app_users == []
        assert associations.members == [(org.id, staying)]
        association_probe.associations_cleared.assert_called_with("user", leaving.value)

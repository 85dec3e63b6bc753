"""Unit tests for application and organization HTTP routes."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from iam.application.services import ApplicationService, OrganizationService
from iam.application.value_objects import CurrentUser
from iam.domain.aggregates import Application, Organization
from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    OrganizationRole,
    Role,
    UserId,
)
from iam.ports.exceptions import (
    ApplicationNotFoundError,
    ApplicationOrphanedError,
    OrganizationNotFoundError,
    PermissionDeniedError,
    UnprocessableError,
)


@pytest.fixture
def mock_application_service() -> AsyncMock:
    return AsyncMock(spec=ApplicationService)


@pytest.fixture
def mock_organization_service() -> AsyncMock:
    return AsyncMock(spec=OrganizationService)


@pytest.fixture
def caller() -> dict:
    return {
        "user": CurrentUser(user_id=UserId.generate().value, role=Role.USER),
    }


@pytest.fixture
def test_client(mock_application_service, mock_organization_service, caller) -> TestClient:
    """Create TestClient with mocked dependencies."""
    from iam.dependencies.application import (
        get_application_service,
        get_organization_service,
    )
    from iam.dependencies.authentication import get_current_user
    from iam.presentation import router

    app = FastAPI()
    app.dependency_overrides[get_application_service] = lambda: mock_application_service
    app.dependency_overrides[get_organization_service] = (
        lambda: mock_organization_service
    )
    app.dependency_overrides[get_current_user] = lambda: caller["user"]
    app.include_router(router)
    return TestClient(app)


@pytest.fixture
def application() -> Application:
    return Application.create(
        name="Map", api_key_id="k1", api_key_value="agk_secret"
    )


class TestApplicationRoutes:
    """Tests for /api/v1/application."""

    def test_create_defaults_to_caller(
        self, test_client, mock_application_service, application, caller
    ):
        mock_application_service.create_application.return_value = application

        response = test_client.post("/api/v1/application", json={"name": "Map"})

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["api_key_value"] == "agk_secret"
        assert "api_key_id" not in body
        mock_application_service.create_application.assert_called_once_with(
            name="Map",
            actor=caller["user"],
            organization_id=None,
            user_id=None,
        )

    def test_create_with_both_owners_returns_422(
        self, test_client, mock_application_service
    ):
        mock_application_service.create_application.side_effect = UnprocessableError(
            "An application cannot belong to both an organization and a user"
        )

        response = test_client.post(
            "/api/v1/application",
            json={
                "name": "Map",
                "organization": OrganizationId.generate().value,
                "user": UserId.generate().value,
            },
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_create_with_malformed_owner(self, test_client, mock_application_service):
        response = test_client.post(
            "/api/v1/application", json={"name": "Map", "organization": "nope"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
        mock_application_service.create_application.assert_not_called()

    def test_update_passes_supplied_owner_fields(
        self, test_client, mock_application_service, application
    ):
        mock_application_service.update_application.return_value = application
        org_id = OrganizationId.generate()

        response = test_client.patch(
            f"/api/v1/application/{application.id.value}",
            json={"organization": org_id.value, "regen_api_key": True},
        )

        assert response.status_code == status.HTTP_200_OK
        kwargs = mock_application_service.update_application.call_args.kwargs
        ownership = kwargs["ownership"]
        assert ownership.organization_id == org_id
        assert ownership.organization_supplied is True
        assert ownership.user_supplied is False
        assert kwargs["regen_api_key"] is True
        assert kwargs["name"] is None

    def test_update_with_explicit_null_owner(
        self, test_client, mock_application_service, application
    ):
        mock_application_service.update_application.return_value = application

        test_client.patch(
            f"/api/v1/application/{application.id.value}", json={"user": None}
        )

        ownership = mock_application_service.update_application.call_args.kwargs[
            "ownership"
        ]
        assert ownership.user_id is None
        assert ownership.user_supplied is True

    def test_update_that_orphans_returns_400(
        self, test_client, mock_application_service, application
    ):
        mock_application_service.update_application.side_effect = (
            ApplicationOrphanedError("would be left without an owner")
        )

        response = test_client.patch(
            f"/api/v1/application/{application.id.value}", json={"user": None}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_get_unknown_returns_404(self, test_client, mock_application_service):
        mock_application_service.get_application.side_effect = (
            ApplicationNotFoundError("missing")
        )

        response = test_client.get(f"/api/v1/application/{ApplicationId.generate().value}")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_get_checks_the_caller(
        self, test_client, mock_application_service, application, caller
    ):
        mock_application_service.get_application.return_value = application

        response = test_client.get(f"/api/v1/application/{application.id.value}")

        assert response.status_code == status.HTTP_200_OK
        mock_application_service.get_application.assert_called_once_with(
            application.id, caller["user"]
        )

    def test_stranger_cannot_read_application(
        self, test_client, mock_application_service, application
    ):
        mock_application_service.get_application.side_effect = PermissionDeniedError(
            "You are not allowed to manage this application"
        )

        response = test_client.get(f"/api/v1/application/{application.id.value}")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert "api_key_value" not in response.text

    def test_get_with_malformed_id(self, test_client):
        response = test_client.get("/api/v1/application/not-a-ulid")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_delete_forbidden(self, test_client, mock_application_service):
        mock_application_service.delete_application.side_effect = (
            PermissionDeniedError("not yours")
        )

        response = test_client.delete(
            f"/api/v1/application/{ApplicationId.generate().value}"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_non_admin_list_is_scoped_to_caller(
        self, test_client, mock_application_service, caller
    ):
        mock_application_service.list_applications.return_value = []

        response = test_client.get(
            f"/api/v1/application?user={UserId.generate().value}"
        )

        assert response.status_code == status.HTTP_200_OK
        kwargs = mock_application_service.list_applications.call_args.kwargs
        assert kwargs["user_id"] == UserId(caller["user"].user_id)

    def test_admin_list_honours_user_filter(
        self, test_client, mock_application_service, caller
    ):
        caller["user"] = CurrentUser(user_id=UserId.generate().value, role=Role.ADMIN)
        mock_application_service.list_applications.return_value = []
        owner = UserId.generate()

        test_client.get(f"/api/v1/application?user={owner.value}&page[size]=5")

        args = mock_application_service.list_applications.call_args
        assert args.kwargs["user_id"] == owner
        assert args.args[0].size == 5

    def test_orphans_for_admin(
        self, test_client, mock_application_service, caller, application
    ):
        caller["user"] = CurrentUser(user_id=UserId.generate().value, role=Role.ADMIN)
        mock_application_service.list_orphaned_applications.return_value = [application]

        response = test_client.get("/api/v1/application/orphans")

        assert response.status_code == status.HTTP_200_OK
        assert [a["id"] for a in response.json()] == [application.id.value]

    def test_orphans_denied_to_users(self, test_client, mock_application_service):
        response = test_client.get("/api/v1/application/orphans")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        mock_application_service.list_orphaned_applications.assert_not_called()


class TestOrganizationRoutes:
    """Tests for /api/v1/organization."""

    def test_create_parses_members_and_applications(
        self, test_client, mock_organization_service
    ):
        app_id = ApplicationId.generate()
        member_id = UserId.generate()
        organization = Organization(
            id=OrganizationId.generate(),
            name="Acme",
            application_ids=[app_id],
            members=[
                OrganizationMembership(user_id=member_id, role=OrganizationRole.ADMIN)
            ],
        )
        mock_organization_service.create_organization.return_value = organization

        response = test_client.post(
            "/api/v1/organization",
            json={
                "name": "Acme",
                "applications": [app_id.value],
                "users": [{"id": member_id.value, "role": "ADMIN"}],
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["applications"] == [app_id.value]
        assert body["users"] == [{"id": member_id.value, "role": "ADMIN"}]
        kwargs = mock_organization_service.create_organization.call_args.kwargs
        assert kwargs["application_ids"] == [app_id]
        assert kwargs["members"][0].role == OrganizationRole.ADMIN

    def test_update_omitted_lists_are_none(self, test_client, mock_organization_service):
        org_id = OrganizationId.generate()
        mock_organization_service.update_organization.return_value = Organization(
            id=org_id, name="Renamed"
        )

        test_client.patch(f"/api/v1/organization/{org_id.value}", json={"name": "Renamed"})

        kwargs = mock_organization_service.update_organization.call_args.kwargs
        assert kwargs["application_ids"] is None
        assert kwargs["members"] is None

    def test_update_empty_list_clears(self, test_client, mock_organization_service):
        org_id = OrganizationId.generate()
        mock_organization_service.update_organization.return_value = Organization(
            id=org_id, name="Acme"
        )

        test_client.patch(f"/api/v1/organization/{org_id.value}", json={"applications": []})

        kwargs = mock_organization_service.update_organization.call_args.kwargs
        assert kwargs["application_ids"] == []

    def test_malformed_member_id(self, test_client, mock_organization_service):
        response = test_client.post(
            "/api/v1/organization",
            json={"name": "Acme", "users": [{"id": "nope"}]},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
        mock_organization_service.create_organization.assert_not_called()

    def test_non_member_cannot_read_organization(
        self, test_client, mock_organization_service, caller
    ):
        org_id = OrganizationId.generate()
        mock_organization_service.get_organization.side_effect = PermissionDeniedError(
            "You are not a member of this organization"
        )

        response = test_client.get(f"/api/v1/organization/{org_id.value}")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        mock_organization_service.get_organization.assert_called_once_with(
            org_id, caller["user"]
        )

    def test_delete_unknown_returns_404(self, test_client, mock_organization_service):
        mock_organization_service.delete_organization.side_effect = (
            OrganizationNotFoundError("missing")
        )

        response = test_client.delete(
            f"/api/v1/organization/{OrganizationId.generate().value}"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

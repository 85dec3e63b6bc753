"""Unit tests for bearer token authentication dependencies."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import Depends, FastAPI, status
from fastapi.testclient import TestClient

from iam.application.services import TokenService
from iam.application.value_objects import CurrentUser
from iam.domain.value_objects import MICROSERVICE_ID, Role, UserId
from iam.ports.exceptions import InvalidCredentialsError, TokenRevokedError


@pytest.fixture
def mock_token_service() -> AsyncMock:
    return AsyncMock(spec=TokenService)


@pytest.fixture
def test_client(mock_token_service) -> TestClient:
    """App exposing one endpoint per role gate."""
    from iam.dependencies.authentication import (
        get_current_user,
        get_token_service,
        require_admin,
        require_admin_or_manager,
        require_microservice,
    )

    app = FastAPI()

    @app.get("/whoami")
    async def whoami(user: CurrentUser = Depends(get_current_user)):
        return {"id": user.user_id}

    @app.get("/admin")
    async def admin(user: CurrentUser = Depends(require_admin)):
        return {"id": user.user_id}

    @app.get("/manager")
    async def manager(user: CurrentUser = Depends(require_admin_or_manager)):
        return {"id": user.user_id}

    @app.get("/internal")
    async def internal(user: CurrentUser = Depends(require_microservice)):
        return {"id": user.user_id}

    app.dependency_overrides[get_token_service] = lambda: mock_token_service
    return TestClient(app)


def _bearer(token: str = "tok") -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestGetCurrentUser:
    def test_missing_header_returns_401(self, test_client, mock_token_service):
        response = test_client.get("/whoami")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"
        mock_token_service.authenticate.assert_not_called()

    def test_valid_token(self, test_client, mock_token_service):
        user_id = UserId.generate().value
        mock_token_service.authenticate.return_value = CurrentUser(
            user_id=user_id, role=Role.USER
        )

        response = test_client.get("/whoami", headers=_bearer("abc"))

        assert response.json() == {"id": user_id}
        mock_token_service.authenticate.assert_called_once_with("abc")

    def test_invalid_token(self, test_client, mock_token_service):
        mock_token_service.authenticate.side_effect = InvalidCredentialsError("Invalid token")

        response = test_client.get("/whoami", headers=_bearer())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_revoked_token_message(self, test_client, mock_token_service):
        mock_token_service.authenticate.side_effect = TokenRevokedError()

        response = test_client.get("/whoami", headers=_bearer())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert "outdated" in response.json()["detail"]


class TestRoleGates:
    @pytest.mark.parametrize(
        ("path", "role", "expected"),
        [
            ("/admin", Role.USER, status.HTTP_403_FORBIDDEN),
            ("/admin", Role.MANAGER, status.HTTP_403_FORBIDDEN),
            ("/admin", Role.ADMIN, status.HTTP_200_OK),
            ("/admin", Role.SUPERADMIN, status.HTTP_200_OK),
            ("/manager", Role.USER, status.HTTP_403_FORBIDDEN),
            ("/manager", Role.MANAGER, status.HTTP_200_OK),
            ("/internal", Role.SUPERADMIN, status.HTTP_403_FORBIDDEN),
        ],
    )
    def test_role_gate(self, test_client, mock_token_service, path, role, expected):
        mock_token_service.authenticate.return_value = CurrentUser(
            user_id=UserId.generate().value, role=role
        )

        assert test_client.get(path, headers=_bearer()).status_code == expected

    @pytest.mark.parametrize("path", ["/admin", "/manager", "/internal"])
    def test_microservice_passes_every_gate(self, test_client, mock_token_service, path):
        mock_token_service.authenticate.return_value = CurrentUser(
            user_id=MICROSERVICE_ID, role=Role.ADMIN
        )

        assert test_client.get(path, headers=_bearer()).status_code == status.HTTP_200_OK

"""Unit tests for UserRepository with a mocked session."""

import pytest
from sqlalchemy.exc import IntegrityError
from unittest.mock import AsyncMock, MagicMock

from iam.domain.aggregates import User
from iam.domain.value_objects import ExtraUserData, Provider, Role, UserId
from iam.infrastructure.models import UserModel
from iam.infrastructure.user_repository import PROVIDER_IDENTITY_INDEX, UserRepository
from iam.ports.exceptions import DuplicateProviderIdentityError
from iam.ports.repositories import IUserRepository


@pytest.fixture
def mock_session():
    """Create mock async session."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def repository(mock_session):
    """Create repository with mock session."""
    return UserRepository(session=mock_session)


def _result(model):
    result = MagicMock()
    result.scalar_one_or_none.return_value = model
    return result


def _user(**kwargs) -> User:
    defaults = dict(
        id=UserId.generate(),
        provider=Provider.GOOGLE,
        provider_id="g-1",
        email="ada@example.com",
        role=Role.USER,
        extra_user_data=ExtraUserData(apps=("rw",)),
    )
    defaults.update(kwargs)
    return User(**defaults)


class TestProtocolCompliance:
    def test_implements_protocol(self, repository):
        assert isinstance(repository, IUserRepository)


class TestSave:
    """Tests for save method."""

    @pytest.mark.asyncio
    async def test_adds_new_user_to_session(self, repository, mock_session):
        user = _user()
        mock_session.execute.return_value = _result(None)

        await repository.save(user)

        added = mock_session.add.call_args[0][0]
        assert isinstance(added, UserModel)
        assert added.id == user.id.value
        assert added.provider == "google"
        assert added.apps == ["rw"]
        mock_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_updates_existing_user(self, repository, mock_session):
        user = _user(email="new@example.com")
        existing = UserModel(id=user.id.value, provider="google", role="USER", apps=[])
        mock_session.execute.return_value = _result(existing)

        await repository.save(user)

        mock_session.add.assert_not_called()
        assert existing.email == "new@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_provider_identity(self, repository, mock_session):
        mock_session.execute.return_value = _result(None)
        mock_session.flush.side_effect = IntegrityError(
            "INSERT", {}, Exception(f'duplicate key violates "{PROVIDER_IDENTITY_INDEX}"')
        )

        with pytest.raises(DuplicateProviderIdentityError):
            await repository.save(_user())

    @pytest.mark.asyncio
    async def test_other_integrity_errors_propagate(self, repository, mock_session):
        mock_session.execute.return_value = _result(None)
        mock_session.flush.side_effect = IntegrityError(
            "INSERT", {}, Exception("violates not-null constraint")
        )

        with pytest.raises(IntegrityError):
            await repository.save(_user())


class TestReads:
    """Tests for lookups."""

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, repository, mock_session):
        mock_session.execute.return_value = _result(None)

        assert await repository.get_by_id(UserId.generate()) is None

    @pytest.mark.asyncio
    async def test_get_by_id_reconstitutes_user(self, repository, mock_session):
        user_id = UserId.generate()
        mock_session.execute.return_value = _result(
            UserModel(
                id=user_id.value,
                provider="local",
                role="MANAGER",
                email="a@example.com",
                apps=["gfw"],
                password="hash",
                salt="salt",
            )
        )

        user = await repository.get_by_id(user_id)

        assert user.id == user_id
        assert user.is_local
        assert user.role == Role.MANAGER
        assert user.extra_user_data.apps == ("gfw",)
        assert user.password == "hash"

    @pytest.mark.asyncio
    async def test_get_by_ids_empty_list(self, repository, mock_session):
        assert await repository.get_by_ids([]) == []
        mock_session.execute.assert_not_called()


class TestDelete:
    @pytest.mark.asyncio
    async def test_returns_false_when_missing(self, repository, mock_session):
        mock_session.execute.return_value = MagicMock(rowcount=0)

        assert await repository.delete(UserId.generate()) is False

    @pytest.mark.asyncio
    async def test_returns_true_when_deleted(self, repository, mock_session):
        mock_session.execute.return_value = MagicMock(rowcount=1)

        assert await repository.delete(UserId.generate()) is True

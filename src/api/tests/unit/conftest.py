"""Unit test fixtures with mocked dependencies."""

import pytest
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def mock_db_settings():
    """Provide test database settings."""
    from infrastructure.settings import DatabaseSettings

    return DatabaseSettings(
        host="testhost",
        port=5432,
        database="testdb",
        username="testuser",
        password="testpass",
    )


@pytest.fixture
def mock_session():
    """Provide a mocked async session that supports ``async with session.begin()``."""
    session = AsyncMock()
    session.in_transaction = MagicMock(return_value=False)

    mock_transaction = MagicMock()
    mock_transaction.__aenter__ = AsyncMock(return_value=None)
    mock_transaction.__aexit__ = AsyncMock(return_value=None)
    session.begin = MagicMock(return_value=mock_transaction)
    session.begin_nested = MagicMock(return_value=mock_transaction)

    return session


@pytest.fixture
def admin_actor():
    """An authenticated ADMIN."""
    from iam.application.value_objects import CurrentUser
    from iam.domain.value_objects import Role, UserId

    return CurrentUser(user_id=UserId.generate().value, role=Role.ADMIN)


@pytest.fixture
def user_actor():
    """An authenticated plain USER."""
    from iam.application.value_objects import CurrentUser
    from iam.domain.value_objects import Role, UserId

    return CurrentUser(user_id=UserId.generate().value, role=Role.USER)


@pytest.fixture
def microservice_actor():
    """A trusted internal caller."""
    from iam.application.value_objects import CurrentUser
    from iam.domain.value_objects import MICROSERVICE_ID, Role

    return CurrentUser(user_id=MICROSERVICE_ID, role=Role.SUPERADMIN)

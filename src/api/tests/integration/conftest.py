"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance.
Use docker-compose for testing.
"""

from collections.abc import AsyncGenerator
import os

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iam.infrastructure import models  # noqa: F401  registers tables on Base
from infrastructure.database.engines import create_database_engine
from infrastructure.database.models import Base
from infrastructure.settings import DatabaseSettings


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests.

    Override with environment variables:
        AUTHGATE_DB_HOST, AUTHGATE_DB_PORT, etc.
    """
    return DatabaseSettings(
        host=os.getenv("AUTHGATE_DB_HOST", "localhost"),
        port=int(os.getenv("AUTHGATE_DB_PORT", "5432")),
        database=os.getenv("AUTHGATE_DB_DATABASE", "authgate"),
        username=os.getenv("AUTHGATE_DB_USERNAME", "authgate"),
        password=SecretStr(os.getenv("AUTHGATE_DB_PASSWORD", "authgate_dev_password")),
    )


@pytest_asyncio.fixture
async def async_session(
    integration_db_settings: DatabaseSettings,
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a session whose work is rolled back after the test.

    The session joins an outer connection-level transaction through
    savepoints, so services can still open and commit their own
    transactions.
    """
    engine = create_database_engine(integration_db_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with engine.connect() as conn:
        outer = await conn.begin()
        sessionmaker = async_sessionmaker(
            bind=conn,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )
        async with sessionmaker() as session:
            yield session
        await outer.rollback()

    await engine.dispose()

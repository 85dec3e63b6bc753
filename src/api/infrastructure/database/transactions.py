"""Transaction scoping shared by application services."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction


def transaction(session: AsyncSession) -> AsyncSessionTransaction:
    """Open a transaction, or a savepoint when one is already active.

    Lets a service call another service's operation from inside its own
    transaction: the inner operation joins the outer one as a savepoint and
    commits or rolls back with it.

    Usage:
        async with transaction(session):
            ...
    """
    if session.in_transaction():
        return session.begin_nested()
    return session.begin()

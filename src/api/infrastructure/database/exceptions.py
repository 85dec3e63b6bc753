"""Helpers for interpreting database errors raised on flush."""


def is_unique_violation(error: Exception, index_name: str) -> bool:
    """Check whether an integrity error was raised by a specific unique index.

    asyncpg reports the violated constraint name in the error message, which
    SQLAlchemy carries through on ``IntegrityError``.

    Args:
        error: The exception raised on flush
        index_name: Name of the unique index or constraint

    Returns:
        True when the message names the index
    """
    return index_name in str(error)

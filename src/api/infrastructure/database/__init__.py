"""Database infrastructure - shared connection primitives."""

from infrastructure.database.exceptions import is_unique_violation
from infrastructure.database.transactions import transaction

__all__ = [
    "is_unique_violation",
    "transaction",
]

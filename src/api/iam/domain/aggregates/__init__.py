"""Domain aggregates for IAM context.

Aggregates are the core business objects containing state and business logic.
They enforce invariants and business rules without depending on infrastructure.
"""

from iam.domain.aggregates.application import Application
from iam.domain.aggregates.deletion import DELETION_FLAGS, Deletion
from iam.domain.aggregates.organization import Organization
from iam.domain.aggregates.password_renewal import PasswordRenewal
from iam.domain.aggregates.pending_user import PENDING_USER_TTL, PendingUser
from iam.domain.aggregates.user import User

__all__ = [
    "Application",
    "DELETION_FLAGS",
    "Deletion",
    "Organization",
    "PENDING_USER_TTL",
    "PasswordRenewal",
    "PendingUser",
    "User",
]

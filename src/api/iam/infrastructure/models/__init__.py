"""SQLAlchemy ORM models for IAM bounded context.

These models map to database tables and are used by repository implementations.
"""

from iam.infrastructure.models.application import ApplicationModel, OrganizationModel
from iam.infrastructure.models.association import (
    ApplicationOrganizationModel,
    ApplicationUserModel,
    OrganizationUserModel,
)
from iam.infrastructure.models.deletion import DeletionModel
from iam.infrastructure.models.user import (
    PasswordRenewalModel,
    PendingUserModel,
    UserModel,
)

__all__ = [
    "ApplicationModel",
    "ApplicationOrganizationModel",
    "ApplicationUserModel",
    "DeletionModel",
    "OrganizationModel",
    "OrganizationUserModel",
    "PasswordRenewalModel",
    "PendingUserModel",
    "UserModel",
]

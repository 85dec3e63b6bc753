"""Application services for IAM bounded context.

Application services orchestrate domain aggregates, repositories, and
other infrastructure to fulfill use cases. They are the "front door" to
the IAM context.
"""

from iam.application.services.application_service import (
    ApplicationService,
    OwnershipChange,
)
from iam.application.services.association_service import (
    AssociationConsistencyManager,
)
from iam.application.services.deletion_service import DeletionService
from iam.application.services.identity_provider_reconciliation_service import (
    IdentityProviderReconciliationService,
)
from iam.application.services.organization_service import OrganizationService
from iam.application.services.reconciliation_service import ReconciliationService
from iam.application.services.token_service import TokenService
from iam.application.services.user_service import UserService

__all__ = [
    "ApplicationService",
    "AssociationConsistencyManager",
    "DeletionService",
    "IdentityProviderReconciliationService",
    "OrganizationService",
    "OwnershipChange",
    "ReconciliationService",
    "TokenService",
    "UserService",
]

"""Domain-Oriented Observability for IAM application layer.

Probes for application service operations following Domain-Oriented Observability patterns.
"""

from iam.application.observability.application_service_probe import (
    ApplicationServiceProbe,
    DefaultApplicationServiceProbe,
    DefaultOrganizationServiceProbe,
    OrganizationServiceProbe,
)
from iam.application.observability.association_probe import (
    AssociationProbe,
    DefaultAssociationProbe,
)
from iam.application.observability.deletion_service_probe import (
    DefaultDeletionServiceProbe,
    DeletionServiceProbe,
)
from iam.application.observability.reconciliation_probe import (
    DefaultReconciliationProbe,
    ReconciliationProbe,
)
from iam.application.observability.token_service_probe import (
    DefaultTokenServiceProbe,
    TokenServiceProbe,
)
from iam.application.observability.user_service_probe import (
    DefaultUserServiceProbe,
    UserServiceProbe,
)

__all__ = [
    "ApplicationServiceProbe",
    "DefaultApplicationServiceProbe",
    "AssociationProbe",
    "DefaultAssociationProbe",
    "DeletionServiceProbe",
    "DefaultDeletionServiceProbe",
    "OrganizationServiceProbe",
    "DefaultOrganizationServiceProbe",
    "ReconciliationProbe",
    "DefaultReconciliationProbe",
    "TokenServiceProbe",
    "DefaultTokenServiceProbe",
    "UserServiceProbe",
    "DefaultUserServiceProbe",
]

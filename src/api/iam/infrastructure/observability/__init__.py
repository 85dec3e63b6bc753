"""Domain-Oriented Observability for IAM infrastructure.

Probes for repository and upstream operations following Domain-Oriented
Observability patterns.
"""

from iam.infrastructure.observability.repository_probe import (
    ApplicationRepositoryProbe,
    AssociationRepositoryProbe,
    CredentialRepositoryProbe,
    DefaultApplicationRepositoryProbe,
    DefaultAssociationRepositoryProbe,
    DefaultCredentialRepositoryProbe,
    DefaultDeletionRepositoryProbe,
    DefaultUserRepositoryProbe,
    DeletionRepositoryProbe,
    UserRepositoryProbe,
)
from iam.infrastructure.observability.upstream_probe import (
    DefaultUpstreamProbe,
    UpstreamProbe,
)

__all__ = [
    "ApplicationRepositoryProbe",
    "DefaultApplicationRepositoryProbe",
    "AssociationRepositoryProbe",
    "DefaultAssociationRepositoryProbe",
    "CredentialRepositoryProbe",
    "DefaultCredentialRepositoryProbe",
    "DeletionRepositoryProbe",
    "DefaultDeletionRepositoryProbe",
    "UpstreamProbe",
    "DefaultUpstreamProbe",
    "UserRepositoryProbe",
    "DefaultUserRepositoryProbe",
]

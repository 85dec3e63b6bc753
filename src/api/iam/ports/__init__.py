"""Ports (interfaces) for IAM bounded context.

Ports define the contracts for repositories and outbound gateways without
specifying implementation details. This allows for dependency inversion
and makes the domain layer independent of infrastructure.
"""

from iam.ports.gateways import ApiKeyCredential, IApiKeyGateway, IMailSender
from iam.ports.identity_provider import IdentityProviderUser, IIdentityProviderClient
from iam.ports.repositories import (
    DeletionQuery,
    IApplicationRepository,
    IAssociationRepository,
    IDeletionRepository,
    IOrganizationRepository,
    IPasswordRenewalRepository,
    IPendingUserRepository,
    IUserRepository,
    UserQuery,
)

__all__ = [
    "ApiKeyCredential",
    "DeletionQuery",
    "IApiKeyGateway",
    "IApplicationRepository",
    "IAssociationRepository",
    "IDeletionRepository",
    "IIdentityProviderClient",
    "IMailSender",
    "IOrganizationRepository",
    "IPasswordRenewalRepository",
    "IPendingUserRepository",
    "IUserRepository",
    "IdentityProviderUser",
    "UserQuery",
]

"""HTTP routes for organization management."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from iam.application.services import OrganizationService
from iam.application.value_objects import CurrentUser
from iam.dependencies.application import get_organization_service
from iam.dependencies.authentication import get_current_user
from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    Page,
    UserId,
)
from iam.ports.exceptions import IAMError
from iam.presentation.errors import to_http_exception
from iam.presentation.organizations.models import (
    CreateOrganizationRequest,
    OrganizationMemberRequest,
    OrganizationResponse,
    UpdateOrganizationRequest,
)

router = APIRouter(
    prefix="/api/v1/organization",
    tags=["organizations"],
)


def _invalid(label: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        detail=f"Invalid {label} ID format",
    )


def _parse_organization_id(value: str) -> OrganizationId:
    try:
        return OrganizationId.from_string(value)
    except ValueError:
        raise _invalid("organization")


def _parse_application_ids(values: list[str] | None) -> list[ApplicationId] | None:
    if values is None:
        return None
    try:
        return [ApplicationId.from_string(v) for v in values]
    except ValueError:
        raise _invalid("application")


def _parse_members(
    members: list[OrganizationMemberRequest] | None,
) -> list[OrganizationMembership] | None:
    if members is None:
        return None
    try:
        return [
            OrganizationMembership(user_id=UserId.from_string(m.id), role=m.role)
            for m in members
        ]
    except ValueError:
        raise _invalid("user")


@router.get("")
async def list_organizations(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[OrganizationService, Depends(get_organization_service)],
    user: str | None = None,
    page_number: Annotated[int, Query(alias="page[number]", ge=1)] = 1,
    page_size: Annotated[int, Query(alias="page[size]", ge=1, le=100)] = 10,
) -> list[OrganizationResponse]:
    """List organizations.

    Admins see every organization and may filter by member ``user``. Other
    callers only see the organizations they belong to.
    """
    if current_user.is_admin:
        try:
            user_id = UserId.from_string(user) if user else None
        except ValueError:
            raise _invalid("user")
    else:
        user_id = UserId(current_user.user_id)

    try:
        organizations = await service.list_organizations(
            Page(number=page_number, size=page_size), user_id=user_id
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return [OrganizationResponse.from_domain(o) for o in organizations]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_organization(
    request: CreateOrganizationRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> OrganizationResponse:
    """Create an organization.

    Listed applications are moved into the new organization and lose any
    previous owner.

    Raises:
        HTTPException: 403 if a non-admin brings an application they do not own
        HTTPException: 404 if an application does not exist
    """
    try:
        organization = await service.create_organization(
            name=request.name,
            actor=current_user,
            application_ids=_parse_application_ids(request.applications),
            members=_parse_members(request.users),
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return OrganizationResponse.from_domain(organization)


@router.get("/{organization_id}")
async def get_organization(
    organization_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> OrganizationResponse:
    """Retrieve an organization.

    Raises:
        HTTPException: 403 if a non-admin caller is not a member
        HTTPException: 404 if the organization does not exist
    """
    try:
        organization = await service.get_organization(
            _parse_organization_id(organization_id), current_user
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return OrganizationResponse.from_domain(organization)


@router.patch("/{organization_id}")
async def update_organization(
    organization_id: str,
    request: UpdateOrganizationRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> OrganizationResponse:
    """Rename an organization or replace its applications or members.

    Raises:
        HTTPException: 403 if the caller is not an admin of the organization
        HTTPException: 404 if the organization or an application does not exist
    """
    try:
        organization = await service.update_organization(
            _parse_organization_id(organization_id),
            actor=current_user,
            name=request.name,
            application_ids=_parse_application_ids(request.applications),
            members=_parse_members(request.users),
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return OrganizationResponse.from_domain(organization)


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    organization_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[OrganizationService, Depends(get_organization_service)],
) -> None:
    """Delete an organization. Its applications are left without an owner.

    Raises:
        HTTPException: 403 if the caller is not an admin of the organization
        HTTPException: 404 if the organization does not exist
    """
    try:
        await service.delete_organization(
            _parse_organization_id(organization_id), actor=current_user
        )
    except IAMError as e:
        raise to_http_exception(e) from e

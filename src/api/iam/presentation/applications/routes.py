"""HTTP routes for application management."""

from __future__ import annotations

from typing import Annotated, Callable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, status

from iam.application.services import ApplicationService, OwnershipChange
from iam.application.value_objects import CurrentUser
from iam.dependencies.application import get_application_service
from iam.dependencies.authentication import get_current_user, require_admin
from iam.domain.value_objects import ApplicationId, OrganizationId, Page, UserId
from iam.ports.exceptions import IAMError
from iam.presentation.applications.models import (
    ApplicationResponse,
    CreateApplicationRequest,
    UpdateApplicationRequest,
)
from iam.presentation.errors import to_http_exception

T = TypeVar("T")

router = APIRouter(
    prefix="/api/v1/application",
    tags=["applications"],
)


def _parse_id(parser: Callable[[str], T], value: str, label: str) -> T:
    try:
        return parser(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"Invalid {label} ID format",
        )


def _ownership_from_request(request: UpdateApplicationRequest) -> OwnershipChange:
    supplied = request.model_fields_set
    organization_id = (
        _parse_id(OrganizationId.from_string, request.organization, "organization")
        if request.organization is not None
        else None
    )
    user_id = (
        _parse_id(UserId.from_string, request.user, "user")
        if request.user is not None
        else None
    )
    return OwnershipChange(
        organization_id=organization_id,
        user_id=user_id,
        organization_supplied="organization" in supplied,
        user_supplied="user" in supplied,
    )


@router.get("")
async def list_applications(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ApplicationService, Depends(get_application_service)],
    user: str | None = None,
    page_number: Annotated[int, Query(alias="page[number]", ge=1)] = 1,
    page_size: Annotated[int, Query(alias="page[size]", ge=1, le=100)] = 10,
) -> list[ApplicationResponse]:
    """List applications.

    Admins see every application and may filter by owning ``user``. Other
    callers only see the applications they own directly.
    """
    if current_user.is_admin:
        user_id = _parse_id(UserId.from_string, user, "user") if user else None
    else:
        user_id = UserId(current_user.user_id)

    try:
        applications = await service.list_applications(
            Page(number=page_number, size=page_size), user_id=user_id
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return [ApplicationResponse.from_domain(a) for a in applications]


@router.get("/orphans")
async def list_orphaned_applications(
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> list[ApplicationResponse]:
    """List applications owned by neither an organization nor a user."""
    try:
        applications = await service.list_orphaned_applications()
    except IAMError as e:
        raise to_http_exception(e) from e
    return [ApplicationResponse.from_domain(a) for a in applications]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_application(
    request: CreateApplicationRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> ApplicationResponse:
    """Register an application and issue its API key.

    Raises:
        HTTPException: 422 if both an organization and a user are given
        HTTPException: 403 if a non-admin creates an application for someone else
        HTTPException: 404 if the owning organization does not exist
    """
    organization_id = (
        _parse_id(OrganizationId.from_string, request.organization, "organization")
        if request.organization
        else None
    )
    user_id = _parse_id(UserId.from_string, request.user, "user") if request.user else None

    try:
        application = await service.create_application(
            name=request.name,
            actor=current_user,
            organization_id=organization_id,
            user_id=user_id,
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return ApplicationResponse.from_domain(application)


@router.get("/{application_id}")
async def get_application(
    application_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> ApplicationResponse:
    """Retrieve an application.

    Raises:
        HTTPException: 403 if the caller may not manage the application
        HTTPException: 404 if the application does not exist
    """
    app_id = _parse_id(ApplicationId.from_string, application_id, "application")
    try:
        application = await service.get_application(app_id, current_user)
    except IAMError as e:
        raise to_http_exception(e) from e
    return ApplicationResponse.from_domain(application)


@router.patch("/{application_id}")
async def update_application(
    application_id: str,
    request: UpdateApplicationRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> ApplicationResponse:
    """Rename an application, change its owner or rotate its API key.

    Raises:
        HTTPException: 400 if the application would be left without an owner
        HTTPException: 403 if the caller may not manage the application
        HTTPException: 404 if the application or the new owner does not exist
        HTTPException: 422 if both an organization and a user are given
    """
    app_id = _parse_id(ApplicationId.from_string, application_id, "application")
    try:
        application = await service.update_application(
            app_id,
            actor=current_user,
            name=request.name,
            ownership=_ownership_from_request(request),
            regen_api_key=request.regen_api_key,
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return ApplicationResponse.from_domain(application)


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> None:
    """Delete an application and revoke its API key.

    Raises:
        HTTPException: 403 if the caller may not manage the application
        HTTPException: 404 if the application does not exist
    """
    app_id = _parse_id(ApplicationId.from_string, application_id, "application")
    try:
        await service.delete_application(app_id, actor=current_user)
    except IAMError as e:
        raise to_http_exception(e) from e

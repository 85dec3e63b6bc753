"""HTTP routes for deletion requests. Admin only."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from iam.application.services import DeletionService
from iam.application.value_objects import CurrentUser
from iam.dependencies.authentication import require_admin
from iam.dependencies.deletion import get_deletion_service
from iam.domain.value_objects import DeletionId, DeletionStatus, Page, UserId
from iam.ports.exceptions import IAMError
from iam.ports.repositories import DeletionQuery
from iam.presentation.deletions.models import (
    CreateDeletionRequest,
    DeletionResponse,
    UpdateDeletionRequest,
)
from iam.presentation.errors import to_http_exception

router = APIRouter(
    prefix="/deletion",
    tags=["deletions"],
)


def _parse_user_id(value: str) -> UserId:
    try:
        return UserId.from_string(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="Invalid user ID format",
        )


def _parse_deletion_id(value: str) -> DeletionId:
    try:
        return DeletionId.from_string(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="Invalid deletion ID format",
        )


@router.get("")
async def list_deletions(
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[DeletionService, Depends(get_deletion_service)],
    user_id: Annotated[str | None, Query(alias="userId")] = None,
    requestor_user_id: Annotated[str | None, Query(alias="requestorUserId")] = None,
    deletion_status: Annotated[DeletionStatus | None, Query(alias="status")] = None,
    page_number: Annotated[int, Query(alias="page[number]", ge=1)] = 1,
    page_size: Annotated[int, Query(alias="page[size]", ge=1, le=100)] = 10,
) -> list[DeletionResponse]:
    """List deletion requests, newest first."""
    query = DeletionQuery(
        status=deletion_status,
        user_id=_parse_user_id(user_id) if user_id else None,
        requestor_user_id=(
            _parse_user_id(requestor_user_id) if requestor_user_id else None
        ),
    )
    try:
        deletions = await service.list_deletions(
            query, Page(number=page_number, size=page_size)
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return [DeletionResponse.from_domain(d) for d in deletions]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_deletion(
    request: CreateDeletionRequest,
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[DeletionService, Depends(get_deletion_service)],
) -> DeletionResponse:
    """Open a deletion request. Without ``user_id`` the caller is targeted.

    Raises:
        HTTPException: 400 if the user already has a deletion request
    """
    requestor = UserId(current_user.user_id)
    if request.user_id:
        target = _parse_user_id(request.user_id)
    elif current_user.is_microservice:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="user_id is required for internal service callers",
        )
    else:
        target = requestor
    try:
        deletion = await service.create_deletion(
            user_id=target,
            requestor_user_id=requestor,
            flags=request.supplied_flags(),
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return DeletionResponse.from_domain(deletion)


@router.get("/user/{user_id}")
async def get_deletion_for_user(
    user_id: str,
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[DeletionService, Depends(get_deletion_service)],
) -> DeletionResponse:
    """Retrieve the deletion request opened for a user."""
    try:
        deletion = await service.get_deletion_by_user_id(_parse_user_id(user_id))
    except IAMError as e:
        raise to_http_exception(e) from e
    return DeletionResponse.from_domain(deletion)


@router.get("/{deletion_id}")
async def get_deletion(
    deletion_id: str,
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[DeletionService, Depends(get_deletion_service)],
) -> DeletionResponse:
    """Retrieve a deletion request."""
    try:
        deletion = await service.get_deletion(_parse_deletion_id(deletion_id))
    except IAMError as e:
        raise to_http_exception(e) from e
    return DeletionResponse.from_domain(deletion)


@router.patch("/{deletion_id}")
async def update_deletion(
    deletion_id: str,
    request: UpdateDeletionRequest,
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[DeletionService, Depends(get_deletion_service)],
) -> DeletionResponse:
    """Update the status or resource flags of a deletion request."""
    try:
        deletion = await service.update_deletion(
            _parse_deletion_id(deletion_id),
            status=request.status,
            flags=request.supplied_flags(),
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return DeletionResponse.from_domain(deletion)


@router.delete("/{deletion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deletion(
    deletion_id: str,
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[DeletionService, Depends(get_deletion_service)],
) -> None:
    """Remove a deletion request."""
    try:
        await service.delete_deletion(_parse_deletion_id(deletion_id))
    except IAMError as e:
        raise to_http_exception(e) from e

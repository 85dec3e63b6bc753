"""HTTP routes for user management."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from iam.application.services import UserService
from iam.application.value_objects import CurrentUser
from iam.dependencies.authentication import (
    get_current_user,
    require_admin,
    require_admin_or_manager,
    require_microservice,
)
from iam.dependencies.user import get_user_service
from iam.domain.value_objects import Page, Provider, Role, UserId
from iam.ports.exceptions import IAMError
from iam.ports.repositories import UserQuery
from iam.presentation.auth.models import PendingUserResponse
from iam.presentation.errors import to_http_exception
from iam.presentation.users.models import (
    CreateUserRequest,
    FindByIdsRequest,
    UpdateMeRequest,
    UpdateUserRequest,
    UserResponse,
)

router = APIRouter(
    prefix="/auth/user",
    tags=["users"],
)


def _parse_user_id(user_id: str) -> UserId:
    try:
        return UserId.from_string(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="Invalid user ID format",
        )


def _parse_page(number: int, size: int, cursor: str | None) -> Page:
    try:
        return Page(number=number, size=size, cursor=cursor)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)
        )


@router.get("")
async def find_users(
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[UserService, Depends(get_user_service)],
    name: str | None = None,
    email: str | None = None,
    provider: Provider | None = None,
    role: Role | None = None,
    app: Annotated[list[str] | None, Query()] = None,
    page_number: Annotated[int, Query(alias="page[number]")] = 1,
    page_size: Annotated[int, Query(alias="page[size]")] = 10,
    page_after: Annotated[str | None, Query(alias="page[after]")] = None,
) -> list[UserResponse]:
    """Search users. Admin only.

    ``name`` and ``email`` match by prefix. Repeat ``app`` to match users
    holding any of several applications.
    """
    query = UserQuery(
        name=name,
        email=email,
        provider=provider,
        role=role,
        apps=tuple(app or ()),
    )
    try:
        users = await service.find_users(
            query, _parse_page(page_number, page_size, page_after)
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return [UserResponse.from_domain(user) for user in users]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: CreateUserRequest,
    current_user: Annotated[CurrentUser, Depends(require_admin_or_manager)],
    service: Annotated[UserService, Depends(get_user_service)],
    origin: str | None = None,
) -> PendingUserResponse:
    """Invite a user. The invitation mail carries a generated password.

    Managers may only invite USERs with applications they hold themselves.

    Raises:
        HTTPException: 403 if the actor may not grant the role or apps
        HTTPException: 400 if the email is already used
    """
    try:
        pending = await service.invite_user(
            email=request.email,
            actor=current_user,
            role=request.role,
            apps=request.apps,
            name=request.name,
            callback_url=request.callback_url,
            origin_app=origin,
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return PendingUserResponse.from_domain(pending)


@router.get("/me")
async def get_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Return the caller's stored user record."""
    try:
        user = await service.get_user(_parse_user_id(current_user.user_id))
    except IAMError as e:
        raise to_http_exception(e) from e
    return UserResponse.from_domain(user)


@router.patch("/me")
async def update_me(
    request: UpdateMeRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Update the caller's own name and photo."""
    try:
        user = await service.update_user(
            _parse_user_id(current_user.user_id),
            actor=current_user,
            name=request.name,
            photo=request.photo,
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return UserResponse.from_domain(user)


@router.post("/find-by-ids")
async def find_by_ids(
    request: FindByIdsRequest,
    _: Annotated[CurrentUser, Depends(require_microservice)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> list[UserResponse]:
    """Resolve many user ids at once. Internal services only.

    Ids that are malformed or unknown are skipped.
    """
    user_ids: list[UserId] = []
    for raw in request.ids:
        try:
            user_ids.append(UserId.from_string(raw))
        except ValueError:
            continue
    try:
        users = await service.get_users_by_ids(user_ids)
    except IAMError as e:
        raise to_http_exception(e) from e
    return [UserResponse.from_domain(user) for user in users]


@router.get("/ids/{role}")
async def get_ids_by_role(
    role: str,
    _: Annotated[CurrentUser, Depends(require_microservice)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> list[str]:
    """List the ids of all users holding a role. Internal services only.

    Raises:
        HTTPException: 422 if the role is not a platform role
    """
    try:
        user_ids = await service.list_ids_by_role(role)
    except IAMError as e:
        raise to_http_exception(e) from e
    return [user_id.value for user_id in user_ids]


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Retrieve a user. Admin only."""
    try:
        user = await service.get_user(_parse_user_id(user_id))
    except IAMError as e:
        raise to_http_exception(e) from e
    return UserResponse.from_domain(user)


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    current_user: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Update a user's profile, role or applications. Admin only.

    Changing role or applications revokes the user's existing tokens.
    """
    try:
        user = await service.update_user(
            _parse_user_id(user_id),
            actor=current_user,
            name=request.name,
            photo=request.photo,
            role=request.role,
            apps=request.apps,
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return UserResponse.from_domain(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    _: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> None:
    """Delete a user. Admin only."""
    try:
        await service.delete_user(_parse_user_id(user_id))
    except IAMError as e:
        raise to_http_exception(e) from e

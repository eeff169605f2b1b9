"""User profile API endpoints."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_account_service, raise_for_result
from app.schemas.users import (
    ErrorResponse,
    Pagination,
    UpdateUserRequest,
    UserData,
    UserPayload,
    UserResponse,
    UsersPayload,
    UsersResponse,
)
from app.services.accounts import AccountService

router = APIRouter(tags=["Users"])


@router.get(
    "/profile/{user_id}",
    response_model=UserResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_profile(
    user_id: str,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Get a single user's profile."""
    result = service.get_profile(db, user_id)
    if not result.success:
        raise_for_result(result)

    return UserResponse(message="Profile found", data=UserPayload(user=UserData.model_validate(result.value)))


@router.get("/users", response_model=UsersResponse)
def list_users(
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> UsersResponse:
    """List users newest first with optional search over name, email and country."""
    result = service.list_users(db, page=page, limit=limit, search=search)
    return UsersResponse(
        data=UsersPayload(
            users=[UserData.model_validate(u) for u in result.items],
            pagination=Pagination.build(result.page, result.limit, result.total),
        )
    )


@router.put(
    "/profile/{user_id}",
    response_model=UserResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def update_profile(
    user_id: str,
    body: UpdateUserRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Update name, email or country."""
    result = service.update_profile(db, user_id, body.changed_fields())
    if not result.success:
        raise_for_result(result)

    return UserResponse(
        message="User updated successfully",
        data=UserPayload(user=UserData.model_validate(result.value)),
    )


@router.delete(
    "/profile/{user_id}",
    status_code=204,
    response_class=Response,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def delete_profile(
    user_id: str,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> Response:
    """Delete an account. A 204 reply carries no body."""
    result = service.delete_account(db, user_id)
    if not result.success:
        raise_for_result(result)

    return Response(status_code=204)

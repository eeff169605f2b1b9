"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.config import Settings
from app.database import get_db
from app.dependencies import get_account_service, get_settings_from_app, raise_for_result
from app.rate_limit import limiter, rate_limits_disabled
from app.schemas.users import (
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    ResetUrlPayload,
    ResetUrlResponse,
    UserData,
    UserPayload,
    UserResponse,
)
from app.services.accounts import AccountService

router = APIRouter(tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit("5/minute", exempt_when=rate_limits_disabled)
def register(
    request: Request,
    body: RegisterRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Register a new user account."""
    result = service.register(db, body.name, body.email, body.password, body.country)
    if not result.success:
        raise_for_result(result)

    return UserResponse(
        message="User registered successfully",
        data=UserPayload(user=UserData.model_validate(result.value)),
    )


@router.post(
    "/login",
    response_model=UserResponse,
    status_code=201,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit("10/minute", exempt_when=rate_limits_disabled)
def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    """Check credentials and return the user."""
    result = service.authenticate(db, body.email, body.password)
    if not result.success:
        raise_for_result(result)

    return UserResponse(
        message="Login successfully",
        data=UserPayload(user=UserData.model_validate(result.value)),
    )


@router.post("/logout", response_model=MessageResponse)
def logout() -> MessageResponse:
    """Nothing to tear down server side; clients discard their own state."""
    return MessageResponse(message="Logged out successfully")


@router.post("/forget-password", response_model=ResetUrlResponse, responses={404: {"model": ErrorResponse}})
@limiter.limit("3/minute", exempt_when=rate_limits_disabled)
def forget_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings_from_app),
) -> ResetUrlResponse:
    """Issue a password reset token and return the link that redeems it."""
    result = service.request_password_reset(db, body.email)
    if not result.success:
        raise_for_result(result)

    base_url = (settings.PUBLIC_BASE_URL or str(request.base_url)).rstrip("/")
    return ResetUrlResponse(
        message="Password reset link generated",
        data=ResetUrlPayload(reset_url=f"{base_url}/reset-password/{result.value}"),
    )


@router.post(
    "/reset-password/{token}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit("5/minute", exempt_when=rate_limits_disabled)
def reset_password(
    request: Request,
    token: str,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Set a new password with a reset token."""
    result = service.reset_password(db, token, body.new_password)
    if not result.success:
        raise_for_result(result)

    return MessageResponse(message="Password reset successfully")

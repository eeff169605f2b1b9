"""Request-scoped dependencies for FastAPI routes."""

from typing import NoReturn

from fastapi import HTTPException, Request

from app.config import Settings
from app.errors import Result
from app.services.accounts import AccountService


def get_settings_from_app(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings


def get_account_service(request: Request) -> AccountService:
    """Account service owned by the running app."""
    return request.app.state.account_service


def raise_for_result(result: Result) -> NoReturn:
    """Turn a failed result into the HTTP error for its kind."""
    raise HTTPException(status_code=result.status_code, detail=result.message)

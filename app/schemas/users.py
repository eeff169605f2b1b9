"""Pydantic schemas for account endpoints."""

import math
import re
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from app.models.user import COUNTRY_MAX_LENGTH, NAME_MAX_LENGTH, PASSWORD_MIN_LENGTH
from app.services.passwords import BCRYPT_MAX_BYTES

EMAIL_PATTERN = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$")


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email address")
    return value


Email = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, max_length=256),
    AfterValidator(_check_email),
]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=NAME_MAX_LENGTH)]
Country = Annotated[str, StringConstraints(strip_whitespace=True, max_length=COUNTRY_MAX_LENGTH)]
NewPassword = Annotated[str, StringConstraints(min_length=PASSWORD_MIN_LENGTH, max_length=BCRYPT_MAX_BYTES)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class RegisterRequest(BaseModel):
    name: Name
    email: Email
    password: NewPassword
    country: Country | None = None


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: Email


class ResetPasswordRequest(CamelModel):
    new_password: NewPassword


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Name | None = None
    email: Email | None = None
    country: Country | None = None

    @field_validator("name", "email", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    def changed_fields(self) -> dict:
        """Fields the client actually sent. An explicit null country clears it."""
        return self.model_dump(exclude_unset=True)


# --- Responses ---


class UserData(CamelModel):
    """Public view of a user. Never carries the password digest."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    country: str | None = None
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit),
            has_next=page * limit < total,
            has_prev=page > 1,
        )


class UserPayload(BaseModel):
    user: UserData


class UsersPayload(BaseModel):
    users: list[UserData]
    pagination: Pagination


class ResetUrlPayload(CamelModel):
    reset_url: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str | None = None


class UserResponse(MessageResponse):
    data: UserPayload


class UsersResponse(MessageResponse):
    data: UsersPayload


class ResetUrlResponse(MessageResponse):
    data: ResetUrlPayload


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: str | None = None

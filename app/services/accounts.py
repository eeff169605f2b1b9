"""Account service: registration, login, password reset and profile management."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.orm import Session

from app.config import Settings
from app.errors import ErrorKind, Result
from app.models.user import NAME_MAX_LENGTH, PASSWORD_MIN_LENGTH, User
from app.repositories.user import UserRepository, clamp_limit, clamp_page, normalize_email
from app.services.passwords import PasswordHasher
from app.services.reset_tokens import ResetTokenManager

logger = logging.getLogger("user_accounts")


@dataclass
class UserPage:
    """One page of a user listing."""

    items: list[User]
    page: int
    limit: int
    total: int


class AccountService:
    """Handles the account lifecycle on top of the user store."""

    def __init__(
        self,
        settings: Settings,
        hasher: PasswordHasher | None = None,
        reset_tokens: ResetTokenManager | None = None,
    ) -> None:
        self.settings = settings
        self.hasher = hasher or PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
        self.reset_tokens = reset_tokens or ResetTokenManager(
            ttl=timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES)
        )

    def _failed(self, operation: str, result: Result) -> Result:
        if result.error is ErrorKind.UNEXPECTED:
            logger.error("%s failed: %s", operation, result.message)
        else:
            logger.info("%s rejected (%s): %s", operation, result.error.value, result.message)
        return result

    def _check_password(self, password: str) -> Result | None:
        if len(password) < PASSWORD_MIN_LENGTH:
            return Result.fail(
                ErrorKind.VALIDATION, f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
            )
        return None

    def _check_name(self, name: str) -> Result | None:
        if not name or len(name) > NAME_MAX_LENGTH:
            return Result.fail(ErrorKind.VALIDATION, f"Name must be between 1 and {NAME_MAX_LENGTH} characters")
        return None

    def register(
        self, db: Session, name: str, email: str, password: str, country: str | None = None
    ) -> Result[User]:
        """Register a new user."""
        name = name.strip()
        invalid = self._check_name(name) or self._check_password(password)
        if invalid:
            return self._failed("register", invalid)

        users = UserRepository(db)
        if users.find_by_email(email):
            return self._failed(
                "register",
                Result.fail(ErrorKind.DUPLICATE_EMAIL, f"Email: {normalize_email(email)} already exist"),
            )

        result = users.create(name, email, self.hasher.hash(password), country)
        if not result.success:
            return self._failed("register", result)

        logger.info("Registered user %s", result.value.id)
        return result

    def authenticate(self, db: Session, email: str, password: str) -> Result[User]:
        """Verify an email and password pair."""
        user = UserRepository(db).find_by_email(email)
        if not user:
            return self._failed("authenticate", Result.fail(ErrorKind.NOT_FOUND, "User not found"))

        if not self.hasher.verify(password, user.password_hash):
            return self._failed(
                "authenticate", Result.fail(ErrorKind.AUTHENTICATION_FAILURE, "Invalid email or password")
            )

        return Result.ok(user)

    def get_profile(self, db: Session, user_id: str) -> Result[User]:
        """Fetch a single user by id."""
        result = UserRepository(db).find_by_id(user_id)
        if not result.success:
            return self._failed("get_profile", result)
        if result.value is None:
            return self._failed("get_profile", Result.fail(ErrorKind.NOT_FOUND, f"User with id {user_id} not found"))
        return result

    def list_users(self, db: Session, page: int = 1, limit: int = 10, search: str | None = None) -> UserPage:
        """List users newest first, optionally filtered by a search string."""
        page = clamp_page(page)
        limit = clamp_limit(limit)
        search = search.strip() if search else None
        items, total = UserRepository(db).list_users(search=search, page=page, limit=limit)
        return UserPage(items=items, page=page, limit=limit, total=total)

    def request_password_reset(self, db: Session, email: str) -> Result[str]:
        """Issue a reset token for the account with this email.

        The token is returned to the caller, which is responsible for getting
        it to the user.
        """
        users = UserRepository(db)
        user = users.find_by_email(email)
        if not user:
            return self._failed(
                "request_password_reset",
                Result.fail(ErrorKind.NOT_FOUND, f"User with email: {email} not found"),
            )

        token = self.reset_tokens.issue(users, user)
        logger.info("Password reset requested for user %s", user.id)
        return Result.ok(token)

    def reset_password(self, db: Session, token: str, new_password: str) -> Result[User]:
        """Set a new password using a live reset token."""
        invalid = self._check_password(new_password)
        if invalid:
            return self._failed("reset_password", invalid)

        result = self.reset_tokens.redeem(UserRepository(db), token, self.hasher.hash(new_password))
        if not result.success:
            return self._failed("reset_password", result)

        logger.info("Password reset completed for user %s", result.value.id)
        return result

    def update_profile(self, db: Session, user_id: str, fields: dict) -> Result[User]:
        """Partially update name, email and country."""
        if not fields:
            return self._failed("update_profile", Result.fail(ErrorKind.VALIDATION, "No fields to update"))

        if "name" in fields:
            fields = {**fields, "name": fields["name"].strip()}
            invalid = self._check_name(fields["name"])
            if invalid:
                return self._failed("update_profile", invalid)

        result = UserRepository(db).update_by_id(user_id, fields)
        if not result.success:
            return self._failed("update_profile", result)
        if result.value is None:
            return self._failed("update_profile", Result.fail(ErrorKind.NOT_FOUND, "User not found"))
        return result

    def delete_account(self, db: Session, user_id: str) -> Result[User]:
        """Delete a user by id."""
        result = UserRepository(db).delete_by_id(user_id)
        if not result.success:
            return self._failed("delete_account", result)
        if result.value is None:
            return self._failed("delete_account", Result.fail(ErrorKind.NOT_FOUND, "User not found"))

        logger.info("Deleted user %s", result.value.id)
        return result

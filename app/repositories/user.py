"""Persistence gateway for user records."""

import logging
import uuid
from datetime import datetime

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import ErrorKind, Result
from app.models.user import User, utcnow

logger = logging.getLogger("user_accounts")

MAX_PAGE_SIZE = 100
# Keeps the offset well inside a signed 64-bit integer
MAX_PAGE = 1_000_000
UPDATABLE_FIELDS = frozenset({"name", "email", "country"})


def normalize_email(email: str) -> str:
    return email.strip().lower()


def parse_user_id(value: str) -> str | None:
    """Return the canonical form of a user id, or None if it is not well formed."""
    try:
        return uuid.UUID(value).hex
    except (ValueError, AttributeError, TypeError):
        return None


def clamp_page(page: int) -> int:
    return min(max(page, 1), MAX_PAGE)


def clamp_limit(limit: int) -> int:
    return min(max(limit, 1), MAX_PAGE_SIZE)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _invalid_id(user_id: str) -> Result:
    return Result.fail(ErrorKind.INVALID_REFERENCE, f"Invalid user ID format: {user_id}")


class UserRepository:
    """Create, read, update and delete users within one database session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _unexpected(self, operation: str, exc: SQLAlchemyError) -> Result:
        self.db.rollback()
        logger.error("Database error during %s: %s", operation, exc)
        return Result.fail(ErrorKind.UNEXPECTED, f"Database error during {operation}")

    def _email_taken(self, email: str, exclude_id: str | None = None) -> bool:
        query = self.db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def create(self, name: str, email: str, password_hash: str, country: str | None = None) -> Result[User]:
        """Insert a new user. Fails with DUPLICATE_EMAIL if the email is taken."""
        email = normalize_email(email)
        try:
            if self._email_taken(email):
                return Result.fail(ErrorKind.DUPLICATE_EMAIL, f"Email: {email} already exist")

            user = User(name=name, email=email, password_hash=password_hash, country=country)
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration
            self.db.rollback()
            return Result.fail(ErrorKind.DUPLICATE_EMAIL, "User with this email already exists")
        except SQLAlchemyError as exc:
            return self._unexpected("create", exc)

        self.db.refresh(user)
        return Result.ok(user)

    def find_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: str) -> Result[User | None]:
        """Look up a user by id. A found-nothing lookup is a successful None."""
        canonical = parse_user_id(user_id)
        if canonical is None:
            return _invalid_id(user_id)
        return Result.ok(self.db.get(User, canonical))

    def list_users(self, search: str | None = None, page: int = 1, limit: int = 10) -> tuple[list[User], int]:
        """Return one page of users, newest first, and the total number of matches."""
        page = clamp_page(page)
        limit = clamp_limit(limit)

        query = self.db.query(User)
        if search:
            pattern = f"%{_escape_like(search)}%"
            query = query.filter(
                or_(
                    User.name.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                    User.country.ilike(pattern, escape="\\"),
                )
            )

        total = query.with_entities(func.count(User.id)).scalar() or 0
        items = query.order_by(User.created_at.desc(), User.id).offset((page - 1) * limit).limit(limit).all()
        return items, total

    def update_by_id(self, user_id: str, fields: dict) -> Result[User | None]:
        """Apply a partial update of name, email and country."""
        canonical = parse_user_id(user_id)
        if canonical is None:
            return _invalid_id(user_id)

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            return Result.fail(ErrorKind.VALIDATION, f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        if "email" in fields:
            fields = {**fields, "email": normalize_email(fields["email"])}

        try:
            if "email" in fields and self._email_taken(fields["email"], exclude_id=canonical):
                return Result.fail(ErrorKind.DUPLICATE_EMAIL, f"Email {fields['email']} is already in use")

            user = self.db.get(User, canonical)
            if user is None:
                return Result.ok(None)

            for field, value in fields.items():
                setattr(user, field, value)
            user.updated_at = utcnow()
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return Result.fail(ErrorKind.DUPLICATE_EMAIL, f"Email {fields.get('email')} is already in use")
        except SQLAlchemyError as exc:
            return self._unexpected("update", exc)

        self.db.refresh(user)
        return Result.ok(user)

    def delete_by_id(self, user_id: str) -> Result[User | None]:
        """Delete a user, returning the removed record if there was one."""
        canonical = parse_user_id(user_id)
        if canonical is None:
            return _invalid_id(user_id)

        try:
            user = self.db.get(User, canonical)
            if user is None:
                return Result.ok(None)
            self.db.delete(user)
            self.db.commit()
        except SQLAlchemyError as exc:
            return self._unexpected("delete", exc)

        return Result.ok(user)

    def set_reset_token(self, user: User, token: str, expires_at: datetime) -> None:
        """Store a reset token and its expiry on the user. Only those fields change."""
        user.reset_password_token = token
        user.reset_password_expires_at = expires_at
        user.updated_at = utcnow()
        self.db.commit()

    def redeem_reset_token(self, token: str, password_hash: str, now: datetime) -> User | None:
        """Swap in a new password digest if the token is live, clearing the token.

        The check and the write are one conditional UPDATE, so a token can be
        redeemed at most once even under concurrent requests.
        """
        user = self.db.query(User).filter(User.reset_password_token == token).first()
        if user is None:
            return None

        result = self.db.execute(
            update(User)
            .where(
                User.id == user.id,
                User.reset_password_token == token,
                User.reset_password_expires_at > now,
            )
            .values(
                password_hash=password_hash,
                reset_password_token=None,
                reset_password_expires_at=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Expired tokens are dropped so they cannot linger on the record
            self.db.execute(
                update(User)
                .where(User.id == user.id, User.reset_password_token == token)
                .values(reset_password_token=None, reset_password_expires_at=None, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            return None

        self.db.commit()
        self.db.refresh(user)
        return user

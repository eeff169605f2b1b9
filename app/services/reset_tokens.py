"""Password reset token issuance and redemption."""

import secrets
from datetime import timedelta

from app.errors import ErrorKind, Result
from app.models.user import User, utcnow
from app.repositories.user import UserRepository

RESET_LINK_INVALID = "Reset password URL not found or expired"


class ResetTokenManager:
    """Issues single-use reset tokens and redeems them before they expire."""

    def __init__(self, ttl: timedelta = timedelta(hours=1)) -> None:
        self.ttl = ttl

    def issue(self, users: UserRepository, user: User) -> str:
        """Generate a token, persist it with its expiry and return it.

        Delivering the token to the user is the caller's job.
        """
        token = secrets.token_urlsafe(32)
        users.set_reset_token(user, token, utcnow() + self.ttl)
        return token

    def redeem(self, users: UserRepository, token: str, password_hash: str) -> Result[User]:
        """Replace the password of the token's owner. Unknown, used and expired tokens all fail alike."""
        if not token:
            return Result.fail(ErrorKind.NOT_FOUND, RESET_LINK_INVALID)
        user = users.redeem_reset_token(token, password_hash, utcnow())
        if user is None:
            return Result.fail(ErrorKind.NOT_FOUND, RESET_LINK_INVALID)
        return Result.ok(user)

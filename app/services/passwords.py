"""Password hashing with bcrypt."""

import bcrypt

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Hashes and verifies passwords with a fixed bcrypt work factor."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """Return a salted bcrypt digest of the password."""
        return bcrypt.hashpw(self._encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, digest: str | None) -> bool:
        """Check a password against a digest. A malformed digest never matches."""
        if not digest:
            return False
        try:
            return bcrypt.checkpw(self._encode(password), digest.encode("utf-8"))
        except ValueError:
            return False

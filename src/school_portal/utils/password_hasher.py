"""Password hashing with bcrypt."""

import logging

import bcrypt

from school_portal.config import BCRYPT_ROUNDS

logger = logging.getLogger(__name__)

# bcrypt ignores everything past 72 bytes; truncate explicitly so hash and
# verify always see the same input.
BCRYPT_MAX_BYTES = 72


def _to_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            BCRYPT_MAX_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:BCRYPT_MAX_BYTES]
    return password_bytes


class PasswordHasher:
    """Salted one-way hashing of stored credentials."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        """Initialize PasswordHasher.

        Args:
            rounds: bcrypt work factor (log2 of the iteration count).
        """
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_to_bytes(password), salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        try:
            return bcrypt.checkpw(_to_bytes(plain_password), hashed_password.encode("utf-8"))
        except ValueError as e:
            logger.error("Password verification error: %s", e)
            return False

"""Custom exception classes for the School Portal identity service.

Every error carries a stable ``reason`` code. Route handlers and the bulk
import ledger report that code instead of the exception class name.
"""

from typing import Optional


class PortalError(Exception):
    """Base exception for all School Portal errors."""

    reason = "PortalError"


class MalformedInputError(PortalError):
    """Raised when a request fails validation before any side effect."""

    reason = "MalformedInput"


class DuplicateEmailError(PortalError):
    """Raised when an account with the given email already exists."""

    reason = "DuplicateEmail"

    def __init__(self, email: str):
        """Initialize the exception.

        Args:
            email: The email address that is already registered.
        """
        self.email = email
        super().__init__(f"An account with email '{email}' already exists")


class UsernameCollisionError(PortalError):
    """Raised when no free username could be generated."""

    reason = "UsernameCollision"

    def __init__(self, base_username: str, attempts: int):
        self.base_username = base_username
        self.attempts = attempts
        super().__init__(
            f"Could not find a free username for '{base_username}' "
            f"after {attempts} attempts"
        )


class IdentityProviderError(PortalError):
    """Raised when the identity directory rejects or fails a call."""

    reason = "IdentityProviderFailure"


class RecordStoreError(PortalError):
    """Raised when the record store fails to read or persist a record."""

    reason = "RecordStoreFailure"


class OrphanedIdentityAccountError(PortalError):
    """Raised when compensation failed and an identity account was left behind.

    The account exists in the identity directory but has no record store row.
    An operator must reconcile it manually.
    """

    reason = "OrphanedIdentityAccount"

    def __init__(self, identity_id: str, cause: Optional[BaseException] = None):
        """Initialize the exception.

        Args:
            identity_id: The identity directory account that could not be
                deleted.
            cause: The store failure that triggered the compensation.
        """
        self.identity_id = identity_id
        self.cause = cause
        super().__init__(
            f"Identity account '{identity_id}' is orphaned and needs reconciliation"
        )


class OperationTimeoutError(PortalError):
    """Raised when an external call exceeds its time budget."""

    reason = "Timeout"


class InvalidCredentialsError(PortalError):
    """Raised on any password login failure."""

    reason = "InvalidCredentials"

    def __init__(self):
        super().__init__("Invalid credentials")


class InvalidQRError(PortalError):
    """Raised on any QR login failure."""

    reason = "InvalidQR"

    def __init__(self):
        super().__init__("Invalid QR code")


class InvalidTokenError(PortalError):
    """Raised when a session token is malformed or has a bad signature."""

    reason = "Invalid"


class ExpiredTokenError(InvalidTokenError):
    """Raised when a session token is past its expiry."""

    reason = "Expired"


class MalformedQRPayloadError(PortalError):
    """Raised when a QR payload string cannot be parsed."""

    reason = "Malformed"

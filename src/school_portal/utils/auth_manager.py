"""Authentication service.

Both login modes end in the same way: ``last_login`` is updated and a session
token of identical shape is issued. Failures are deliberately uninformative;
the caller never learns whether the account or the secret was wrong.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from school_portal.core.exceptions import (
    InvalidCredentialsError,
    InvalidQRError,
    MalformedQRPayloadError,
    RecordStoreError,
)
from school_portal.schemas.user import IdentityRecord, Role
from school_portal.utils.password_hasher import PasswordHasher
from school_portal.utils.record_store import IdentityTable, RecordStore
from school_portal.utils.token_codec import SessionClaims, TokenCodec

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    token: str
    user: IdentityRecord


class AuthenticationManager:
    """Validates password and QR logins and issues session tokens."""

    def __init__(
        self,
        record_store: RecordStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        token_ttl: Optional[timedelta] = None,
    ):
        self.record_store = record_store
        self.hasher = hasher
        self.codec = codec
        self.token_ttl = token_ttl

    def login_password(self, identifier: str, password: str, role: Role) -> LoginResult:
        """Log in with a username (or, for students, an email) and password.

        Args:
            identifier: Username, or email address for students.
            password: Plain text password.
            role: Identity space to search.

        Returns:
            LoginResult with a session token and the account record.

        Raises:
            InvalidCredentialsError: On any failure.
        """
        table = self.record_store.for_role(Role.parse(role))

        # Username first; the email fallback only exists for students
        user = table.find_by_username(identifier)
        if user is None and table.allows_email_login:
            user = table.find_by_email(identifier)

        if user is None or not user.is_active:
            logger.info("Password login failed for %s (%s): unknown account", identifier, table.role.value)
            raise InvalidCredentialsError()

        if not self.hasher.verify(password, user.password_hash):
            logger.info("Password login failed for %s (%s): bad password", identifier, table.role.value)
            raise InvalidCredentialsError()

        return self._issue(table, user)

    def login_qr(self, value: str, role: Role) -> LoginResult:
        """Log in with a scanned QR code.

        The value is first treated as the stored QR token. If no account
        holds it, it is parsed as a QR payload and the embedded username and
        password are checked instead.

        Raises:
            InvalidQRError: On any failure.
        """
        table = self.record_store.for_role(Role.parse(role))

        user = table.find_by_qr_token(value)
        if user is None:
            user = self._user_from_payload(table, value)

        if user is None or not user.is_active:
            logger.info("QR login failed (%s)", table.role.value)
            raise InvalidQRError()

        return self._issue(table, user)

    def get_current_user(self, claims: SessionClaims) -> Optional[IdentityRecord]:
        """Return the record a verified session token refers to, if it still exists."""
        table = self.record_store.for_role(claims.role)
        return table.find_by_id(claims.id)

    def _user_from_payload(self, table: IdentityTable, value: str) -> Optional[IdentityRecord]:
        try:
            payload = self.codec.decode_qr_payload(value)
        except MalformedQRPayloadError:
            return None

        try:
            payload_role = payload.resolved_role()
        except ValueError:
            return None
        if payload_role is not None and payload_role != table.role:
            return None

        user = table.find_by_username(payload.username)
        if user is None or not self.hasher.verify(payload.password, user.password_hash):
            return None
        return user

    def _issue(self, table: IdentityTable, user: IdentityRecord) -> LoginResult:
        claims = SessionClaims(id=user.id, username=user.username, role=table.role)
        token = self.codec.encode_session_token(claims, self.token_ttl)
        try:
            last_login = table.touch_last_login(user.id)
        except RecordStoreError as e:
            # last_login is best-effort
            logger.warning("Could not update last login for %s: %s", user.id, e)
        else:
            user = user.model_copy(update={"last_login": last_login})
        logger.info("%s %s logged in", table.role.value.capitalize(), user.username)
        return LoginResult(token=token, user=user)

"""Registration pipeline.

Registering an account touches two systems with no shared transaction: the
identity directory and the record store. The pipeline runs as a saga with a
single compensating action:

1. advisory duplicate-email check (no side effects),
2. credential generation with bounded username retries,
3. password hashing and QR payload construction,
4. identity directory account creation,
5. record store insert, keyed by the identity id; on failure the identity
   account from step 4 is deleted,
6. best-effort welcome notification.

A record store row therefore never exists without its identity account. The
reverse only happens when the compensating delete itself fails, which is
escalated as OrphanedIdentityAccountError.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from school_portal.config import MAX_USERNAME_ATTEMPTS
from school_portal.core.exceptions import (
    DuplicateEmailError,
    IdentityProviderError,
    OperationTimeoutError,
    OrphanedIdentityAccountError,
    RecordStoreError,
    UsernameCollisionError,
)
from school_portal.schemas.registration import (
    ControllerRegistrationRequest,
    StudentRegistrationRequest,
)
from school_portal.schemas.user import IdentityRecord, Role
from school_portal.utils.credentials import (
    CredentialPair,
    generate_credentials,
    generate_qr_token,
    generate_username_salt,
)
from school_portal.utils.identity_directory import IdentityDirectory
from school_portal.utils.notifier import WelcomeNotifier
from school_portal.utils.password_hasher import PasswordHasher
from school_portal.utils.record_store import IdentityTable, RecordStore, utc_now_iso
from school_portal.utils.token_codec import (
    TokenCodec,
    build_login_payload,
    build_student_login_payload,
)

logger = logging.getLogger(__name__)


@dataclass
class RegistrationResult:
    """Outcome of a successful registration.

    ``credentials.password`` is the only copy of the plaintext password; it is
    returned once so the caller can relay it to the account owner.
    """

    record: IdentityRecord
    credentials: CredentialPair
    qr_payload: str
    # Student card payload; only students get one
    card_payload: Optional[str] = None

    @property
    def qr_token(self) -> str:
        return self.record.qr_token


class RegistrationManager:
    """Coordinates account creation across the identity directory and record store."""

    def __init__(
        self,
        record_store: RecordStore,
        identity_directory: IdentityDirectory,
        hasher: PasswordHasher,
        codec: TokenCodec,
        notifier: WelcomeNotifier,
        max_username_attempts: int = MAX_USERNAME_ATTEMPTS,
    ):
        self.record_store = record_store
        self.identity_directory = identity_directory
        self.hasher = hasher
        self.codec = codec
        self.notifier = notifier
        self.max_username_attempts = max_username_attempts

    def register_student(self, request: StudentRegistrationRequest) -> RegistrationResult:
        """Register a newly enrolled student with generated credentials.

        Args:
            request: Validated student profile.

        Returns:
            RegistrationResult with the persisted record and the plaintext
            credentials.

        Raises:
            DuplicateEmailError: If the email is already registered.
            UsernameCollisionError: If no free username could be generated.
            IdentityProviderError: If the identity account could not be created.
            RecordStoreError: If the insert failed (identity account removed).
            OrphanedIdentityAccountError: If the insert failed and the identity
                account could not be removed.
        """
        table = self.record_store.students
        self._check_email_free(table, request.email)
        credentials = self._available_credentials(table, request.name)

        profile = {
            "class_name": request.class_name,
            "division": request.division,
            "parent_name": request.parent_name,
            "place": request.place,
            "roll_number": request.roll_number or "",
            "phone": request.phone or "",
            "email_sent": False,
        }
        metadata = {
            "username": credentials.username,
            "name": request.name,
            "role": Role.STUDENT.value,
            "class": request.class_name,
            "division": request.division,
        }
        result = self._provision(
            table, request.email, request.name, credentials, metadata, profile
        )
        result.card_payload = self.codec.encode_qr_payload(
            build_student_login_payload(
                credentials.username,
                credentials.password,
                result.record.id,
                result.record.name,
                result.record.class_name or "",
                result.record.division or "",
            )
        )
        return result

    def register_controller(self, request: ControllerRegistrationRequest) -> RegistrationResult:
        """Register a primary controller with the credentials it supplied.

        Raises:
            DuplicateEmailError: If the email is already registered.
            UsernameCollisionError: If the username is taken.
            IdentityProviderError, RecordStoreError, OrphanedIdentityAccountError:
                As for ``register_student``.
        """
        table = self.record_store.controllers
        self._check_email_free(table, request.email)
        if table.username_exists(request.username):
            raise UsernameCollisionError(request.username, 1)

        credentials = CredentialPair(username=request.username, password=request.password)
        metadata = {
            "username": credentials.username,
            "name": request.name,
            "role": Role.CONTROLLER.value,
        }
        return self._provision(table, request.email, request.name, credentials, metadata, {})

    def _check_email_free(self, table: IdentityTable, email: str) -> None:
        # Advisory only: the unique constraint on insert is the real arbiter
        if table.email_exists(email):
            logger.info("Rejected %s registration for existing email %s", table.role.value, email)
            raise DuplicateEmailError(email)

    def _available_credentials(self, table: IdentityTable, name: str) -> CredentialPair:
        credentials = generate_credentials(name)
        base_username = credentials.username
        for attempt in range(1, self.max_username_attempts + 1):
            if not table.username_exists(credentials.username):
                return credentials
            logger.info(
                "Username %s already taken (attempt %d/%d)",
                credentials.username,
                attempt,
                self.max_username_attempts,
            )
            credentials = generate_credentials(name, salt=generate_username_salt())
        raise UsernameCollisionError(base_username, self.max_username_attempts)

    def _provision(
        self,
        table: IdentityTable,
        email: str,
        name: str,
        credentials: CredentialPair,
        metadata: Dict[str, Any],
        profile: Dict[str, Any],
    ) -> RegistrationResult:
        role = table.role
        password_hash = self.hasher.hash(credentials.password)
        qr_token = generate_qr_token()
        qr_payload = self.codec.encode_qr_payload(
            build_login_payload(credentials.username, credentials.password, role)
        )

        try:
            identity_id = self.identity_directory.create_account(
                email, credentials.password, metadata
            )
        except (IdentityProviderError, OperationTimeoutError) as e:
            logger.error("Identity account creation failed for %s: %s", email, e)
            raise IdentityProviderError(f"Failed to create identity account: {e}") from e
        except Exception as e:
            logger.exception("Unexpected identity directory failure for %s", email)
            raise IdentityProviderError(f"Failed to create identity account: {e!r}") from e

        now = utc_now_iso()
        try:
            record = IdentityRecord(
                id=identity_id,
                username=credentials.username,
                password_hash=password_hash,
                email=email,
                name=name,
                role=role,
                qr_token=qr_token,
                is_active=True,
                created_at=now,
                updated_at=now,
                last_login=None,
                **profile,
            )
            record = table.insert(record)
        except (RecordStoreError, OperationTimeoutError) as e:
            logger.error(
                "Record store insert failed for %s (%s), compensating: %s",
                email,
                identity_id,
                e,
            )
            self._compensate(identity_id, e)
            raise RecordStoreError(f"Failed to register {role.value}: {e}") from e
        except Exception as e:
            logger.exception(
                "Unexpected record store failure for %s (%s), compensating", email, identity_id
            )
            self._compensate(identity_id, e)
            raise RecordStoreError(f"Failed to register {role.value}: {e!r}") from e

        logger.info("Registered %s %s (%s)", role.value, record.username, record.id)
        record = self._notify(table, record, credentials.password, qr_payload)
        return RegistrationResult(record=record, credentials=credentials, qr_payload=qr_payload)

    def _compensate(self, identity_id: str, cause: BaseException) -> None:
        try:
            self.identity_directory.delete_account(identity_id)
        except (IdentityProviderError, OperationTimeoutError) as e:
            logger.critical(
                "Compensation failed: identity account %s has no record store row "
                "and must be reconciled manually (%s)",
                identity_id,
                e,
            )
            raise OrphanedIdentityAccountError(identity_id, cause) from e
        logger.info("Compensated: deleted identity account %s", identity_id)

    def _notify(
        self,
        table: IdentityTable,
        record: IdentityRecord,
        password: str,
        qr_payload: str,
    ) -> IdentityRecord:
        try:
            sent = self.notifier.send_welcome(record, password, qr_payload)
        except Exception as e:
            logger.warning("Failed to send welcome email to %s: %s", record.email, e)
            return record
        if not sent or not table.tracks_email_sent:
            return record

        try:
            table.mark_email_sent(record.id)
        except (RecordStoreError, OperationTimeoutError) as e:
            logger.warning("Could not flag welcome email as sent for %s: %s", record.id, e)
            return record
        return record.model_copy(update={"email_sent": True})

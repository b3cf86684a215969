"""Record store access for students and primary controllers.

The role of a request is resolved once into a table accessor
(``StudentTable`` or ``ControllerTable``); every lookup afterwards is confined
to that table, so the two identity spaces never cross.
"""

import logging
from datetime import datetime
from typing import List, Optional, Type

import pytz
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from school_portal.core.exceptions import OperationTimeoutError, RecordStoreError
from school_portal.models.controller import ControllerModel
from school_portal.models.student import StudentModel
from school_portal.schemas.user import IdentityRecord, Role
from school_portal.utils.converters import model_to_record, record_to_model

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(pytz.utc).isoformat()


class IdentityTable:
    """Typed access to one identity table."""

    role: Role
    model: Type
    # Whether password login may fall back to an email lookup
    allows_email_login = False
    # Whether the table has an email_sent column
    tracks_email_sent = False

    def __init__(self, db: Session):
        self.db = db

    def _first(self, *criteria) -> Optional[IdentityRecord]:
        try:
            model = self.db.query(self.model).filter(*criteria).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _store_error("lookup", e) from e
        return model_to_record(model) if model else None

    def find_by_id(self, identity_id: str) -> Optional[IdentityRecord]:
        return self._first(self.model.id == identity_id)

    def find_by_username(self, username: str) -> Optional[IdentityRecord]:
        return self._first(self.model.username == username)

    def find_by_email(self, email: str) -> Optional[IdentityRecord]:
        return self._first(self.model.email == email.lower())

    def find_by_qr_token(self, qr_token: str) -> Optional[IdentityRecord]:
        return self._first(self.model.qr_token == qr_token)

    def email_exists(self, email: str) -> bool:
        return self.find_by_email(email) is not None

    def username_exists(self, username: str) -> bool:
        return self.find_by_username(username) is not None

    def insert(self, record: IdentityRecord) -> IdentityRecord:
        """Persist a new record.

        The table's unique constraints on email, username and QR token are
        the final arbiter of uniqueness; a violation surfaces as
        RecordStoreError like any other store failure.

        Raises:
            RecordStoreError: If the insert fails.
        """
        model = record_to_model(record, self.model)
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except IntegrityError as e:
            self.db.rollback()
            raise RecordStoreError(
                f"Constraint violation inserting {self.role.value} '{record.username}'"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _store_error("insert", e) from e
        logger.info("Inserted %s record %s (%s)", self.role.value, record.id, record.username)
        return model_to_record(model)

    def _update(self, identity_id: str, **values) -> None:
        try:
            updated = (
                self.db.query(self.model)
                .filter(self.model.id == identity_id)
                .update(values, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _store_error("update", e) from e
        if not updated:
            raise RecordStoreError(f"{self.role.value} '{identity_id}' not found")

    def touch_last_login(self, identity_id: str) -> str:
        """Record a successful login and return its timestamp."""
        now = utc_now_iso()
        self._update(identity_id, last_login=now)
        return now

    def mark_email_sent(self, identity_id: str) -> None:
        """Flag the welcome email as delivered. No-op where it is not tracked."""
        if self.tracks_email_sent:
            self._update(identity_id, email_sent=True, updated_at=utc_now_iso())


class StudentTable(IdentityTable):
    role = Role.STUDENT
    model = StudentModel
    allows_email_login = True
    tracks_email_sent = True

    def list_all(self) -> List[IdentityRecord]:
        try:
            models = (
                self.db.query(StudentModel)
                .order_by(StudentModel.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _store_error("list", e) from e
        return [model_to_record(m) for m in models]


class ControllerTable(IdentityTable):
    role = Role.CONTROLLER
    model = ControllerModel


class RecordStore:
    """Entry point to the record store, bound to one request-scoped session."""

    def __init__(self, db: Session):
        """Initialize RecordStore.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db
        self.students = StudentTable(db)
        self.controllers = ControllerTable(db)

    def for_role(self, role: Role) -> IdentityTable:
        if role == Role.STUDENT:
            return self.students
        if role == Role.CONTROLLER:
            return self.controllers
        raise ValueError(f"Unknown role: {role}")


# Driver messages that signal a timeout
_TIMEOUT_MARKERS = ("timeout", "timed out", "database is locked")


def _store_error(operation: str, exc: SQLAlchemyError) -> Exception:
    message = f"Record store {operation} failed: {exc.__class__.__name__}"
    if isinstance(exc, PoolTimeoutError):
        return OperationTimeoutError(message)
    if isinstance(exc, OperationalError) and any(m in str(exc).lower() for m in _TIMEOUT_MARKERS):
        return OperationTimeoutError(message)
    return RecordStoreError(message)

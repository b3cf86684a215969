import os

# Keep the default engine away from the on-disk database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from collections.abc import Generator

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import school_portal.models  # noqa: F401
from school_portal.core import dependencies
from school_portal.core.database import get_db
from school_portal.core.exceptions import IdentityProviderError
from school_portal.models.base import Base
from school_portal.schemas.registration import StudentRegistrationRequest
from school_portal.utils.auth_manager import AuthenticationManager
from school_portal.utils.identity_directory import InMemoryIdentityDirectory
from school_portal.utils.notifier import LoggingWelcomeNotifier
from school_portal.utils.password_hasher import PasswordHasher
from school_portal.utils.record_store import RecordStore
from school_portal.utils.registration_manager import RegistrationManager
from school_portal.utils.token_codec import TokenCodec

TEST_SECRET = "unit-test-secret"


class PermissiveIdentityDirectory(InMemoryIdentityDirectory):
    """Directory that, like a racing second request, accepts a repeated email."""

    def create_account(self, email, password, metadata=None):
        identity_id = f"acct-{len(self) + 1}"
        self._accounts[identity_id] = {"email": email, "metadata": dict(metadata or {})}
        return identity_id


class UndeletableIdentityDirectory(InMemoryIdentityDirectory):
    def delete_account(self, identity_id):
        raise IdentityProviderError("delete rejected")


class FakeResponse:
    """Stand-in for ``requests.Response``; an Exception payload is raised by ``json()``."""

    def __init__(self, status_code: int, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            err = requests.HTTPError(f"HTTP {self.status_code}")
            err.response = self
            raise err

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class RecordingNotifier(LoggingWelcomeNotifier):
    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def send_welcome(self, record, password, qr_payload):
        self.sent.append((record.email, password))
        return self.result


def student_request(name="Alice Doe", email="alice@example.com", **overrides):
    data = {
        "name": name,
        "email": email,
        "class": "7",
        "division": "B",
        "parentName": "Jane Doe",
        "place": "Springfield",
    }
    data.update(overrides)
    return StudentRegistrationRequest.model_validate(data)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    local_session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = local_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db) -> RecordStore:
    return RecordStore(db)


@pytest.fixture
def directory() -> InMemoryIdentityDirectory:
    return InMemoryIdentityDirectory()


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret_key=TEST_SECRET)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier(result=False)


@pytest.fixture
def registration(store, directory, hasher, codec, notifier) -> RegistrationManager:
    return RegistrationManager(store, directory, hasher, codec, notifier)


@pytest.fixture
def auth(store, hasher, codec) -> AuthenticationManager:
    return AuthenticationManager(store, hasher, codec)


@pytest.fixture
def client(engine, directory, hasher, codec, notifier) -> Generator[TestClient, None, None]:
    from school_portal.app import app

    local_session = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    def _get_db():
        session = local_session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[dependencies.get_identity_directory] = lambda: directory
    app.dependency_overrides[dependencies.get_password_hasher] = lambda: hasher
    app.dependency_overrides[dependencies.get_token_codec] = lambda: codec
    app.dependency_overrides[dependencies.get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

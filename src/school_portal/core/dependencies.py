"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes.
Request-scoped collaborators are built on the request's database session;
the identity directory client, hasher, codec and notifier are process-wide.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from school_portal.config import IDENTITY_DIRECTORY_SERVICE_KEY, IDENTITY_DIRECTORY_URL
from school_portal.core.database import get_db
from school_portal.utils import auth_manager
from school_portal.utils import bulk_import
from school_portal.utils import identity_directory
from school_portal.utils import notifier
from school_portal.utils import password_hasher
from school_portal.utils import record_store
from school_portal.utils import registration_manager
from school_portal.utils import token_codec

# Process-wide singletons
_identity_directory_instance: identity_directory.IdentityDirectory = None
_password_hasher_instance: password_hasher.PasswordHasher = None
_token_codec_instance: token_codec.TokenCodec = None
_notifier_instance: notifier.WelcomeNotifier = None


def get_identity_directory() -> identity_directory.IdentityDirectory:
    """Get the identity directory client singleton.

    Uses the Supabase admin API when ``IDENTITY_DIRECTORY_URL`` is set and an
    in-process directory otherwise.
    """
    global _identity_directory_instance
    if _identity_directory_instance is None:
        if IDENTITY_DIRECTORY_URL:
            _identity_directory_instance = identity_directory.SupabaseIdentityDirectory(
                IDENTITY_DIRECTORY_URL, IDENTITY_DIRECTORY_SERVICE_KEY or ""
            )
        else:
            _identity_directory_instance = identity_directory.InMemoryIdentityDirectory()
    return _identity_directory_instance


def get_password_hasher() -> password_hasher.PasswordHasher:
    global _password_hasher_instance
    if _password_hasher_instance is None:
        _password_hasher_instance = password_hasher.PasswordHasher()
    return _password_hasher_instance


def get_token_codec() -> token_codec.TokenCodec:
    global _token_codec_instance
    if _token_codec_instance is None:
        _token_codec_instance = token_codec.TokenCodec()
    return _token_codec_instance


def get_notifier() -> notifier.WelcomeNotifier:
    global _notifier_instance
    if _notifier_instance is None:
        _notifier_instance = notifier.LoggingWelcomeNotifier()
    return _notifier_instance


def get_record_store(db: Session = Depends(get_db)) -> record_store.RecordStore:
    """Get RecordStore instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        RecordStore instance.
    """
    return record_store.RecordStore(db)


# Type aliases for dependency injection
RecordStoreDep = Annotated[record_store.RecordStore, Depends(get_record_store)]
IdentityDirectoryDep = Annotated[
    identity_directory.IdentityDirectory, Depends(get_identity_directory)
]
PasswordHasherDep = Annotated[password_hasher.PasswordHasher, Depends(get_password_hasher)]
TokenCodecDep = Annotated[token_codec.TokenCodec, Depends(get_token_codec)]
NotifierDep = Annotated[notifier.WelcomeNotifier, Depends(get_notifier)]


def get_registration_manager(
    store: RecordStoreDep,
    directory: IdentityDirectoryDep,
    hasher: PasswordHasherDep,
    codec: TokenCodecDep,
    welcome_notifier: NotifierDep,
) -> registration_manager.RegistrationManager:
    """Get RegistrationManager instance wired to the request's record store."""
    return registration_manager.RegistrationManager(
        store, directory, hasher, codec, welcome_notifier
    )


def get_auth_manager(
    store: RecordStoreDep,
    hasher: PasswordHasherDep,
    codec: TokenCodecDep,
) -> auth_manager.AuthenticationManager:
    """Get AuthenticationManager instance wired to the request's record store."""
    return auth_manager.AuthenticationManager(store, hasher, codec)


RegistrationManagerDep = Annotated[
    registration_manager.RegistrationManager, Depends(get_registration_manager)
]
AuthManagerDep = Annotated[auth_manager.AuthenticationManager, Depends(get_auth_manager)]


def get_bulk_import_processor(
    manager: RegistrationManagerDep,
) -> bulk_import.BulkImportProcessor:
    return bulk_import.BulkImportProcessor(manager)


BulkImportProcessorDep = Annotated[
    bulk_import.BulkImportProcessor, Depends(get_bulk_import_processor)
]

"""Credential generation utilities.

Usernames are derived from the display name and are not guaranteed to be
unique; the registration pipeline checks them against the record store and
retries with a salt on collision.
"""

import re
import secrets
from dataclasses import dataclass
from typing import Optional

from school_portal.core.exceptions import MalformedInputError

# Password suffix is drawn uniformly from [PASSWORD_SUFFIX_MIN, PASSWORD_SUFFIX_MAX)
PASSWORD_SUFFIX_MIN = 100
PASSWORD_SUFFIX_MAX = 10000

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CredentialPair:
    """A username and its plaintext password.

    The password only lives in memory and in the one-time registration
    response; it is never persisted.
    """

    username: str
    password: str

    def __repr__(self) -> str:
        return f"CredentialPair(username={self.username!r}, password='***')"


def generate_credentials(display_name: str, salt: Optional[str] = None) -> CredentialPair:
    """Derive a credential pair from a display name.

    Args:
        display_name: The account owner's display name.
        salt: Optional disambiguation suffix appended to the username.

    Returns:
        CredentialPair with the derived username and a fresh password.

    Raises:
        MalformedInputError: If the display name is empty.
    """
    tokens = (display_name or "").split()
    if not tokens:
        raise MalformedInputError("Display name must not be empty")

    username = _WHITESPACE.sub("", display_name).lower()
    if salt:
        username = f"{username}{salt}"

    suffix = PASSWORD_SUFFIX_MIN + secrets.randbelow(PASSWORD_SUFFIX_MAX - PASSWORD_SUFFIX_MIN)
    return CredentialPair(username=username, password=f"{tokens[0]}{suffix}")


def generate_username_salt() -> str:
    """Return a fresh random suffix for username disambiguation."""
    return str(10 + secrets.randbelow(990))


def generate_qr_token() -> str:
    """Return an opaque token used for QR login lookups."""
    return secrets.token_urlsafe(16)

"""Identity directory clients.

The identity directory is the external account system that holds
authentication credentials. It is addressed by email and issues the opaque
account id that the record store reuses as its primary key.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from school_portal.config import EXTERNAL_CALL_TIMEOUT_SECONDS
from school_portal.core.exceptions import IdentityProviderError, OperationTimeoutError

logger = logging.getLogger(__name__)


class IdentityDirectory(ABC):
    """Interface to an identity-account provider."""

    @abstractmethod
    def create_account(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """Create an account and return its identity id.

        Raises:
            IdentityProviderError: If the provider rejects the account.
            OperationTimeoutError: If the provider does not answer in time.
        """

    @abstractmethod
    def delete_account(self, identity_id: str) -> None:
        """Delete an account.

        Raises:
            IdentityProviderError: If the provider fails to delete it.
            OperationTimeoutError: If the provider does not answer in time.
        """


class SupabaseIdentityDirectory(IdentityDirectory):
    """Identity directory backed by the Supabase Auth admin API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = EXTERNAL_CALL_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Supabase project URL, e.g. ``https://xyz.supabase.co``.
            service_key: Service-role key allowed to call the admin API.
            timeout: Per-request timeout in seconds.
            session: Optional pre-configured requests session.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type": "application/json",
            }
        )

    def _users_url(self, identity_id: Optional[str] = None) -> str:
        url = f"{self.base_url}/auth/v1/admin/users"
        return f"{url}/{identity_id}" if identity_id else url

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp
        except requests.Timeout as e:
            raise OperationTimeoutError(
                f"Identity directory did not answer within {self.timeout}s"
            ) from e
        except requests.HTTPError as e:
            detail = _error_detail(e.response)
            raise IdentityProviderError(
                f"Identity directory returned HTTP {e.response.status_code}: {detail}"
            ) from e
        except requests.RequestException as e:
            raise IdentityProviderError(f"Identity directory unreachable: {e}") from e

    def create_account(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        resp = self._request(
            "POST",
            self._users_url(),
            json={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": metadata or {},
            },
        )
        try:
            body = resp.json()
        except ValueError as e:
            raise IdentityProviderError(
                f"Identity directory returned a non-JSON body: {_error_detail(resp)}"
            ) from e
        # Older Auth versions wrap the user object
        user = body.get("user", body) if isinstance(body, dict) else {}
        identity_id = user.get("id") if isinstance(user, dict) else None
        if not identity_id:
            raise IdentityProviderError("Identity directory response has no account id")
        logger.info("Created identity account %s", identity_id)
        return str(identity_id)

    def delete_account(self, identity_id: str) -> None:
        self._request("DELETE", self._users_url(identity_id))
        logger.info("Deleted identity account %s", identity_id)


class InMemoryIdentityDirectory(IdentityDirectory):
    """Process-local identity directory for development and tests."""

    def __init__(self):
        self._accounts: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def create_account(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        with self._lock:
            if any(a["email"] == email for a in self._accounts.values()):
                raise IdentityProviderError(
                    "A user with this email address has already been registered"
                )
            identity_id = str(uuid.uuid4())
            self._accounts[identity_id] = {"email": email, "metadata": dict(metadata or {})}
        return identity_id

    def delete_account(self, identity_id: str) -> None:
        with self._lock:
            if self._accounts.pop(identity_id, None) is None:
                raise IdentityProviderError(f"Identity account '{identity_id}' not found")

    def has_account(self, identity_id: str) -> bool:
        return identity_id in self._accounts

    def find_by_email(self, email: str) -> Optional[str]:
        for identity_id, account in self._accounts.items():
            if account["email"] == email:
                return identity_id
        return None

    def __len__(self) -> int:
        return len(self._accounts)


def _error_detail(resp: Optional[requests.Response]) -> str:
    if resp is None:
        return "no response"
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("msg") or body.get("message") or body.get("error_description") or body)
    return str(body)

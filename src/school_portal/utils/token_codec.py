"""Session token and QR payload codec.

Session tokens are HS256 JWTs carrying ``{id, username, role, exp}``. They are
stateless: verification only checks the signature and the expiry.

QR payloads are plain JSON and are not signed.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import pytz
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import TypeAdapter, ValidationError

from school_portal.config import (
    SESSION_ALGORITHM,
    SESSION_SECRET_KEY,
    SESSION_TOKEN_TTL_MINUTES,
)
from school_portal.core.exceptions import (
    ExpiredTokenError,
    InvalidTokenError,
    MalformedQRPayloadError,
)
from school_portal.schemas.qr import LoginQRPayload, QRPayload, StudentLoginQRPayload
from school_portal.schemas.user import Role

logger = logging.getLogger(__name__)

_QR_PAYLOAD_ADAPTER = TypeAdapter(QRPayload)


@dataclass(frozen=True)
class SessionClaims:
    """Claims carried by a session token."""

    id: str
    username: str
    role: Role
    expires_at: Optional[datetime] = field(default=None, compare=False)


class TokenCodec:
    """Builds and parses session tokens and QR login payloads."""

    def __init__(
        self,
        secret_key: str = SESSION_SECRET_KEY,
        algorithm: str = SESSION_ALGORITHM,
        default_ttl: timedelta = timedelta(minutes=SESSION_TOKEN_TTL_MINUTES),
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.default_ttl = default_ttl

    def encode_session_token(
        self, claims: SessionClaims, ttl: Optional[timedelta] = None
    ) -> str:
        """Sign a session token.

        Args:
            claims: Identity claims to embed.
            ttl: Token lifetime; defaults to the configured session TTL.

        Returns:
            Encoded JWT string.
        """
        expire = datetime.now(pytz.utc) + (ttl if ttl is not None else self.default_ttl)
        to_encode = {
            "id": claims.id,
            "username": claims.username,
            "role": Role(claims.role).value,
            "exp": expire,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode_session_token(self, token: str) -> SessionClaims:
        """Verify a session token and return its claims.

        Raises:
            ExpiredTokenError: If the token is past its expiry.
            InvalidTokenError: If the signature, format or claims are invalid.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise ExpiredTokenError("Session token has expired") from e
        except JWTError as e:
            raise InvalidTokenError("Invalid session token") from e

        try:
            return SessionClaims(
                id=str(payload["id"]),
                username=str(payload["username"]),
                role=Role(payload["role"]),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=pytz.utc),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError("Session token is missing required claims") from e

    def encode_qr_payload(self, payload: QRPayload) -> str:
        """Serialize a QR login payload to the JSON text rendered in the code."""
        return json.dumps(payload.model_dump(by_alias=True))

    def decode_qr_payload(self, text: str) -> QRPayload:
        """Parse a scanned QR payload.

        Raises:
            MalformedQRPayloadError: If the text is not a known payload.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise MalformedQRPayloadError("QR payload is not JSON") from e
        if not isinstance(data, dict):
            raise MalformedQRPayloadError("QR payload must be a JSON object")

        try:
            return _QR_PAYLOAD_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise MalformedQRPayloadError(f"Unrecognized QR payload: {e.error_count()} errors") from e


def build_login_payload(username: str, password: str, role: Role) -> LoginQRPayload:
    return LoginQRPayload(username=username, password=password, role=role.value)


def build_student_login_payload(
    username: str,
    password: str,
    student_id: str,
    name: str,
    class_name: str,
    division: str,
) -> StudentLoginQRPayload:
    return StudentLoginQRPayload(
        username=username,
        password=password,
        student_id=student_id,
        name=name,
        class_name=class_name,
        division=division,
    )

"""Authentication request and response schemas."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from school_portal.schemas.user import Role


class _RoleRequest(BaseModel):
    role: Role = Field(default=Role.STUDENT, description="'student' or 'controller' ('primary' accepted).")

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, value: Any) -> Role:
        return Role.parse(value)


class LoginRequest(_RoleRequest):
    """Password login body. ``username`` may be an email for students."""

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class QRLoginRequest(_RoleRequest):
    """QR login body: either the stored QR token or the scanned JSON payload."""

    qr_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: Dict[str, Any]


class CurrentUserResponse(BaseModel):
    user: Dict[str, Any]
    qr_token: Optional[str] = None

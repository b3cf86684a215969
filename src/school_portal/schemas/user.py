"""Identity schema definitions.

This module defines the Role enum and the IdentityRecord data model shared by
students and primary controllers.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# Fields that never leave the service in a user view
PRIVATE_FIELDS = {"password_hash", "qr_token"}


class Role(str, Enum):
    """The two identity spaces of the portal."""

    STUDENT = "student"
    CONTROLLER = "controller"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """Resolve a role from request input.

        ``primary`` is accepted as the historical name of the controller role.

        Raises:
            ValueError: If the value names neither role.
        """
        if isinstance(value, Role):
            return value
        normalized = str(value or "").strip().lower()
        if normalized == "primary":
            return cls.CONTROLLER
        return cls(normalized)


class IdentityRecord(BaseModel):
    """A persisted student or primary controller."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Account id shared with the identity directory.")
    username: str
    password_hash: str
    email: str
    name: str
    role: Role
    qr_token: str
    is_active: bool = True
    created_at: str
    updated_at: str
    last_login: Optional[str] = None

    # Student-only profile attributes
    class_name: Optional[str] = None
    division: Optional[str] = None
    parent_name: Optional[str] = None
    place: Optional[str] = None
    roll_number: Optional[str] = None
    phone: Optional[str] = None
    email_sent: Optional[bool] = None

    def to_view(self) -> Dict[str, Any]:
        """Return the record without secrets and without unset student fields."""
        data = self.model_dump(mode="json", exclude=PRIVATE_FIELDS)
        if self.role == Role.CONTROLLER:
            data = {k: v for k, v in data.items() if v is not None or k == "last_login"}
        return data

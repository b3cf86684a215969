"""Registration request and response schemas.

Request bodies are validated here, before the registration pipeline touches
either the identity directory or the record store.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class StudentRegistrationRequest(BaseModel):
    """Profile of a newly enrolled student."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    class_name: str = Field(alias="class", min_length=1)
    division: str = Field(min_length=1)
    parent_name: str = Field(alias="parentName", default="")
    place: str = ""
    roll_number: Optional[str] = Field(alias="rollNumber", default=None)
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class ControllerRegistrationRequest(BaseModel):
    """Bootstrap request for a primary controller account."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    username: str = Field(min_length=3, max_length=50, pattern=r"^\S+$")
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class RegistrationResponse(BaseModel):
    """Returned once after a successful registration.

    The plaintext password is only ever returned here, for relaying to the
    account owner.
    """

    id: str
    username: str
    password: str
    email: str
    name: str
    qr_token: str
    qr_payload: str
    # Student card payload (studentId, name, class, division)
    qr_card_payload: Optional[str] = None
    email_sent: bool = False


class BulkRowResult(BaseModel):
    row: int
    name: Optional[str] = None
    success: bool
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None


class BulkImportResponse(BaseModel):
    success: bool = True
    message: str
    total: int
    succeeded: int
    failed: int
    results: List[BulkRowResult]

"""QR login payload definitions.

The payload is plain JSON rendered into a scannable code by an external
collaborator. It is not signed: it carries the account password and must be
handled with the same care as the password itself.
"""

from typing import Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from school_portal.schemas.user import Role


class LoginQRPayload(BaseModel):
    """Generic login payload embedded in registration QR codes."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["login"] = Field(
        default="login",
        validation_alias=AliasChoices("type", "kind"),
        serialization_alias="type",
    )
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: Optional[str] = None

    def resolved_role(self) -> Optional[Role]:
        return Role.parse(self.role) if self.role else None


class StudentLoginQRPayload(BaseModel):
    """Student card payload, carrying the profile shown by scanners."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["student_login"] = Field(
        default="student_login",
        validation_alias=AliasChoices("type", "kind"),
        serialization_alias="type",
    )
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    student_id: str = Field(
        validation_alias=AliasChoices("studentId", "student_id"),
        serialization_alias="studentId",
    )
    name: str
    class_name: str = Field(
        validation_alias=AliasChoices("class", "class_name"),
        serialization_alias="class",
    )
    division: str

    def resolved_role(self) -> Optional[Role]:
        return Role.STUDENT


QRPayload = Union[LoginQRPayload, StudentLoginQRPayload]

from dataclasses import dataclass, field as dc_field
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional

from email_validator import validate_email, EmailNotValidError
from pydantic import BaseModel, Field, ValidationError, field_validator


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")
    account_verified: bool = Field(False, alias="accountVerified")
    login_method: Optional[str] = Field(None, alias="loginMethod")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        from_attributes = True
        populate_by_name = True


def serialize_user(user) -> dict:
    return UserRead.model_validate(user).model_dump(mode="json", by_alias=True)


class UserFields(BaseModel):
    """Field rules for a user record, checked before anything is written."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None

    @field_validator("name")
    @classmethod
    def _name_length(cls, v):
        if v is None:
            return v
        if len(v) > 30:
            raise ValueError("Name cannot exceed 30 characters")
        if len(v) < 4:
            raise ValueError("Name should have more than 4 characters")
        return v

    @field_validator("email")
    @classmethod
    def _email_format(cls, v):
        if v is None:
            return v
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError:
            raise ValueError("Please enter a valid email")
        return v

    @field_validator("password")
    @classmethod
    def _password_length(cls, v):
        if v is not None and len(v) < 8:
            raise ValueError("Password should be greater than 8 characters")
        return v

    @field_validator("date_of_birth")
    @classmethod
    def _born_in_the_past(cls, v):
        if v is not None and v >= datetime.now(timezone.utc).date():
            raise ValueError("Date of birth must be in the past.")
        return v


REQUIRED_MESSAGES = {
    "name": "Please enter your name",
    "email": "Please enter your email",
    "password": "Please enter your password",
}


@dataclass
class ValidationResult:
    ok: bool
    errors: Dict[str, str] = dc_field(default_factory=dict)

    @property
    def message(self) -> str:
        return "; ".join(self.errors.values())


def validate_user_fields(fields: Mapping[str, Any], partial: bool = False) -> ValidationResult:
    """Check user fields.

    With ``partial`` only the fields present in ``fields`` are checked and
    required fields may be absent; otherwise name, email and password must
    all be present.
    """
    errors: Dict[str, str] = {}
    known = {k: v for k, v in fields.items() if k in UserFields.model_fields}

    for name, message in REQUIRED_MESSAGES.items():
        present = name in known and known[name] not in (None, "")
        if not present and (not partial or name in known):
            errors[name] = message

    to_check = {k: v for k, v in known.items() if k not in errors and v is not None}
    try:
        UserFields.model_validate(to_check)
    except ValidationError as exc:
        for err in exc.errors():
            loc = str(err["loc"][0]) if err.get("loc") else "__root__"
            ctx_error = (err.get("ctx") or {}).get("error")
            errors.setdefault(loc, str(ctx_error) if ctx_error else err["msg"])

    return ValidationResult(ok=not errors, errors=errors)

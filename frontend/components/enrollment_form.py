"""
Enrollment form component for the Face ID capture client.

Holds the identity fields typed in during enrollment and reports whether
they are valid. The orchestrator reads ``required_fields_present`` /
``is_valid`` and asks for the metadata; it never edits the form.

Field rules:
    - firstName, lastName: required, at most 50 characters
    - email: a valid address, or empty
    - phone: digits and '+' only, or empty
    - age: optional; 0 means "not given"
"""

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator

NAME_MAX_LENGTH = 50
EMAIL_MESSAGE = "Please enter a valid email address"
PHONE_PATTERN = re.compile(r"^[0-9+]+$")


class IdentityMetadata(BaseModel):
    """Validated identity fields attached to an enrollment."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = Field(None, description="Caller-assigned identifier")
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    age: Optional[int] = Field(None, description="Age in years; 0 means unset")
    gender: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def _check_first_name(cls, value: str) -> str:
        return _check_name(value, "First name")

    @field_validator("last_name")
    @classmethod
    def _check_last_name(cls, value: str) -> str:
        return _check_name(value, "Last name")

    @field_validator("age", mode="before")
    @classmethod
    def _empty_age(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("email", mode="before")
    @classmethod
    def _empty_email(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: Optional[str]) -> Optional[str]:
        if value and not PHONE_PATTERN.match(value):
            raise ValueError("Phone number can only contain + and numbers")
        return value

    def to_form_fields(self) -> Dict[str, str]:
        """
        Scalar multipart fields for the enrollment request.

        Unset values (None, empty strings, age 0) are left out instead of
        being sent as empty or zero.
        """
        fields = {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "age": str(self.age) if self.age else None,
            "gender": self.gender,
            "email": self.email,
            "phone": self.phone,
        }
        return {key: value for key, value in fields.items() if value}


def _check_name(value: str, label: str) -> str:
    if not value:
        raise ValueError(f"{label} is required")
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError(f"{label} cannot exceed {NAME_MAX_LENGTH} characters")
    return value


class IdentityForm:
    """
    Editable enrollment form state.

    Values are keyed by their wire names (firstName, lastName, ...).
    """

    DEFAULTS: Dict[str, Any] = {
        "id": "",
        "firstName": "",
        "lastName": "",
        "age": 0,
        "gender": "",
        "email": "",
        "phone": "",
    }

    def __init__(self, **values: Any):
        self._values: Dict[str, Any] = dict(self.DEFAULTS)
        self.update(**values)

    def update(self, **values: Any) -> None:
        """Set one or more fields."""
        for name, value in values.items():
            if name not in self.DEFAULTS:
                raise KeyError(f"Unknown form field '{name}'")
            self._values[name] = value

    def reset(self) -> None:
        self._values = dict(self.DEFAULTS)

    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    @property
    def required_fields_present(self) -> bool:
        """True when both first and last name are filled in and not too long."""
        return all(
            isinstance(self._values[name], str)
            and 0 < len(self._values[name]) <= NAME_MAX_LENGTH
            for name in ("firstName", "lastName")
        )

    @property
    def errors(self) -> Dict[str, str]:
        """Validation messages keyed by wire field name."""
        try:
            IdentityMetadata.model_validate(self._values)
        except ValidationError as e:
            errors = {_wire_name(err["loc"]): _message(err) for err in e.errors()}
            if "email" in errors:
                errors["email"] = EMAIL_MESSAGE
            return errors
        return {}

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_metadata(self) -> IdentityMetadata:
        """
        Build validated metadata.

        Raises:
            pydantic.ValidationError: If the form is not valid.
        """
        return IdentityMetadata.model_validate(self._values)


def _wire_name(loc: tuple) -> str:
    name = str(loc[0]) if loc else ""
    aliases = {"first_name": "firstName", "last_name": "lastName"}
    return aliases.get(name, name)


def _message(err: Dict[str, Any]) -> str:
    ctx_error = err.get("ctx", {}).get("error")
    return str(ctx_error) if ctx_error is not None else err["msg"]

"""
Form validation for the registration page and the admin editors.

Validation is synchronous and purely local. Errors are reported per field as
``{field: [message, ...]}`` so the client can show them inline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Type

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from cafe_backend.errors import ValidationError

EXPERIENCE_LEVELS = (
    "enthusiast",
    "homebrewer",
    "shop-owner",
    "barista",
    "beginner",
    "other",
)

MAX_SCREENSHOT_BYTES = 5_000_000

_MISSING_MESSAGE = "This field is required"


def _required(label: str, value: Optional[str]) -> str:
    value = (value or "").strip()
    if not value:
        raise PydanticCustomError("required", "{label} is required", {"label": label})
    return value


class RegistrationForm(BaseModel):
    name: str
    email: str
    phone: str
    experience: str
    agree_to_terms: bool = Field(default=False, validate_default=True)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise PydanticCustomError(
                "name_too_short", "Name must be at least 2 characters"
            )
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        try:
            result = validate_email(value.strip(), check_deliverability=False)
        except EmailNotValidError:
            raise PydanticCustomError(
                "invalid_email", "Please enter a valid email address"
            )
        return result.normalized

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        if len(value) < 10:
            raise PydanticCustomError(
                "invalid_phone", "Please enter a valid phone number"
            )
        return value

    @field_validator("experience")
    @classmethod
    def _check_experience(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError(
                "experience_required", "Please select your coffee experience level"
            )
        if value not in EXPERIENCE_LEVELS:
            raise PydanticCustomError(
                "invalid_experience",
                "Experience level must be one of: {choices}",
                {"choices": ", ".join(EXPERIENCE_LEVELS)},
            )
        return value

    @field_validator("agree_to_terms")
    @classmethod
    def _check_agreement(cls, value: bool) -> bool:
        if value is not True:
            raise PydanticCustomError(
                "terms_not_accepted", "You must agree to the terms and conditions"
            )
        return value


class EventConfigForm(BaseModel):
    id: Optional[str] = None
    title: str
    description: str
    event_date: str
    start_time: str
    end_time: str
    min_participants: int
    max_participants: int
    price_per_person: float
    down_payment_percentage: int
    featured_coffees: Optional[str] = None
    additional_info: Optional[str] = None

    @field_validator("title", "description", "event_date", "start_time", "end_time")
    @classmethod
    def _check_text(cls, value: str, info) -> str:
        return _required(info.field_name.replace("_", " ").capitalize(), value)

    @field_validator("min_participants", "max_participants", "price_per_person")
    @classmethod
    def _check_non_negative(cls, value, info):
        if value < 0:
            label = info.field_name.replace("_", " ").capitalize()
            raise PydanticCustomError(
                "negative", "{label} must not be negative", {"label": label}
            )
        return value

    @field_validator("down_payment_percentage")
    @classmethod
    def _check_percentage(cls, value: int) -> int:
        if not 0 <= value <= 100:
            raise PydanticCustomError(
                "percentage_range", "Percentage must be between 0-100"
            )
        return value

    @field_validator("featured_coffees", "additional_info")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class TermsForm(BaseModel):
    title: str
    content: str
    version: str = "1.0"

    @field_validator("title", "content", "version")
    @classmethod
    def _check_text(cls, value: str, info) -> str:
        return _required(info.field_name.capitalize(), value)


@dataclass
class ScreenshotUpload:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_payment_screenshot(upload: ScreenshotUpload) -> list[str]:
    errors = []
    if not (upload.content_type or "").startswith("image/"):
        errors.append("Payment screenshot must be an image")
    if upload.size > MAX_SCREENSHOT_BYTES:
        errors.append("File size must be less than 5MB")
    return errors


def field_errors(exc: PydanticValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("__root__",)
        name = str(loc[0])
        message = _MISSING_MESSAGE if error["type"] == "missing" else error["msg"]
        errors.setdefault(name, []).append(message)
    return errors


def validate_form(model: Type[BaseModel], data: dict) -> BaseModel:
    """Validate ``data`` against ``model`` or raise a field-scoped ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(field_errors(exc)) from exc


def validate_field(model: Type[BaseModel], name: str, value: Any) -> list[str]:
    """Re-run the rules for a single field, ignoring every other field."""
    if name not in model.model_fields:
        raise ValidationError({name: ["Unknown field"]})
    try:
        model.model_validate({name: value})
    except PydanticValidationError as exc:
        return field_errors(exc).get(name, [])
    return []

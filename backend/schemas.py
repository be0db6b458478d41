"""
Request payload schemas.

Each schema mirrors one form of the journal app. ``validate_payload`` turns
pydantic's ValidationError into the field-keyed error map returned to the
caller, e.g. ``{"text": ["Your entry must be at least 10 characters long."]}``.
"""
from typing import Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, EmailStr, Field, StrictInt, ValidationError, field_validator

MIN_ENTRY_LENGTH = 10
MAX_ENTRY_LENGTH = 1000

INVALID_EMAIL = "Invalid email address."

T = TypeVar("T", bound=BaseModel)


def _check_name(value: str) -> str:
    value = value.strip()
    if len(value) < 2:
        raise ValueError("Name must be at least 2 characters long.")
    return value


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class EntryIn(BaseModel):
    """New journal entry."""
    text: str
    mood_score: StrictInt = Field(..., description="1 (Awful) .. 5 (Awesome)")
    user_id: int
    prompt: Optional[str] = None

    @field_validator("text")
    @classmethod
    def text_length(cls, v: str) -> str:
        if len(v) < MIN_ENTRY_LENGTH:
            raise ValueError("Your entry must be at least 10 characters long.")
        if len(v) > MAX_ENTRY_LENGTH:
            raise ValueError("Your entry must be at most 1000 characters long.")
        return v

    @field_validator("mood_score")
    @classmethod
    def mood_range(cls, v: int) -> int:
        if not 1 <= v <= 5:
            raise ValueError("Mood score must be between 1 and 5.")
        return v


class EntryUpdate(EntryIn):
    id: str


class UserIn(BaseModel):
    name: str
    email: Optional[EmailStr] = None
    can_edit: bool = False

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v):
        return _blank_to_none(v)


class UserUpdate(UserIn):
    id: int


class SignUpIn(BaseModel):
    """Anonymous sign-up: display name, optional email."""
    name: str
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v):
        return _blank_to_none(v)


class SettingsIn(BaseModel):
    gratitude_prompt: str
    show_explanation: bool

    @field_validator("gratitude_prompt")
    @classmethod
    def prompt_length(cls, v: str) -> str:
        if len(v.strip()) < 5:
            raise ValueError("Prompt must be at least 5 characters.")
        return v


def flatten_errors(exc: ValidationError) -> dict:
    errors: dict = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err.get("loc") else "form"
        if field == "email":
            message = INVALID_EMAIL
        elif err.get("type") == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err["msg"]
        errors.setdefault(field, []).append(message)
    return errors


def validate_payload(schema: Type[T], data) -> Tuple[Optional[T], Optional[dict]]:
    """Validate ``data`` against ``schema``; return (model, None) or (None, errors)."""
    if not isinstance(data, dict):
        return None, {"form": ["Expected a JSON object."]}
    try:
        return schema.model_validate(data), None
    except ValidationError as e:
        return None, flatten_errors(e)

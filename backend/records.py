"""
Domain records shared by the storage backends, the service layer and the
aggregation helpers.

A user is either an ``AuthenticatedUser`` (signed up with an email) or a
``ProfileOnlyUser`` (display name only). Both serialize to the same dict
shape; ``email`` is simply absent for profile-only users.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

MOOD_LABELS = {
    1: "Awful",
    2: "Okay",
    3: "Good",
    4: "Great",
    5: "Awesome",
}

ADMIN_NAME = "Admin"

DEFAULT_GRATITUDE_PROMPT = "What are you grateful for?"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_entry_date(value: str) -> datetime:
    """Parse an ISO-8601 entry date; accepts a trailing 'Z' and bare dates."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class JournalEntry:
    id: str
    date: str
    mood_score: int
    text: str
    user_id: int
    prompt: Optional[str] = None

    @property
    def day(self):
        return parse_entry_date(self.date).date()

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "date": self.date,
            "mood_score": self.mood_score,
            "text": self.text,
            "user_id": self.user_id,
        }
        if self.prompt:
            data["prompt"] = self.prompt
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "JournalEntry":
        """Build an entry from its stored dict; raises KeyError/ValueError on bad data."""
        date = str(data["date"])
        parse_entry_date(date)
        return cls(
            id=str(data["id"]),
            date=date,
            mood_score=int(data["mood_score"]),
            text=data["text"],
            user_id=int(data["user_id"]),
            prompt=data.get("prompt"),
        )


@dataclass
class ProfileOnlyUser:
    id: int
    name: str
    can_edit: bool = False

    @property
    def email(self) -> Optional[str]:
        return None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "can_edit": self.can_edit}


@dataclass
class AuthenticatedUser:
    id: int
    name: str
    email: str
    can_edit: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "can_edit": self.can_edit,
        }


User = Union[AuthenticatedUser, ProfileOnlyUser]


def make_user(id: int, name: str, email: Optional[str] = None, can_edit: bool = False) -> User:
    """Build the right user variant depending on whether an email is known."""
    if email:
        return AuthenticatedUser(id=id, name=name, email=email, can_edit=can_edit)
    return ProfileOnlyUser(id=id, name=name, can_edit=can_edit)


def user_from_dict(data: dict) -> User:
    return make_user(
        id=int(data["id"]),
        name=data["name"],
        email=data.get("email"),
        can_edit=bool(data.get("can_edit", False)),
    )


def is_admin(user: Optional[User], admin_email: str) -> bool:
    if user is None or not user.email:
        return False
    return user.email.lower() == admin_email.lower()


@dataclass
class Settings:
    gratitude_prompt: str = DEFAULT_GRATITUDE_PROMPT
    show_explanation: bool = True

    def to_dict(self) -> dict:
        return {
            "gratitude_prompt": self.gratitude_prompt,
            "show_explanation": self.show_explanation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        defaults = cls()
        return cls(
            gratitude_prompt=data.get("gratitude_prompt", defaults.gratitude_prompt),
            show_explanation=bool(data.get("show_explanation", defaults.show_explanation)),
        )

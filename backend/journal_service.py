"""
Journal operations: entries, users, settings and the AI-backed extras.

Every mutating operation returns an ``ActionResult``. Validation problems
are reported as a field-keyed error map (``{"text": ["..."]}``, with
``"form"`` for whole-form errors) rather than raised.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

import aggregation
import gpt_service
from records import ADMIN_NAME, JournalEntry, Settings, is_admin, make_user, utc_now_iso
from schemas import (
    EntryIn,
    EntryUpdate,
    SettingsIn,
    SignUpIn,
    UserIn,
    UserUpdate,
    validate_payload,
)

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    success: bool
    data: dict = field(default_factory=dict)
    error: Optional[dict] = None
    # HTTP status the API layer should use
    status: int = 200

    @classmethod
    def ok(cls, status=200, **data):
        return cls(success=True, data=data, status=status)

    @classmethod
    def fail(cls, error: dict, status=400):
        return cls(success=False, error=error, status=status)

    def to_dict(self) -> dict:
        body = {"success": self.success}
        if self.success:
            body.update(self.data)
        else:
            body["error"] = self.error
        return body


class JournalService:
    def __init__(self, store, admin_email: str, ai=gpt_service):
        self.store = store
        self.admin_email = admin_email
        self.ai = ai

    # ---------- Helpers ----------

    def _is_reserved(self, name: str, email: Optional[str]) -> Optional[dict]:
        if name.lower() == ADMIN_NAME.lower():
            return {"name": [f'"{ADMIN_NAME}" is a reserved name.']}
        if email and email.lower() == self.admin_email.lower():
            return {"email": ["This email is reserved."]}
        return None

    def _email_taken(self, email: Optional[str], exclude_id: Optional[int] = None) -> bool:
        if not email:
            return False
        return any(
            u.email and u.email.lower() == email.lower() and u.id != exclude_id
            for u in self.store.list_users()
        )

    def admin_user(self):
        for user in self.store.list_users():
            if is_admin(user, self.admin_email):
                return user
        return None

    def ensure_admin(self):
        """Create the administrator account on first start."""
        admin = self.admin_user()
        if admin is None:
            admin = self.store.create_user(ADMIN_NAME, email=self.admin_email, can_edit=True)
            logger.info("Created administrator account (%s)", self.admin_email)
        return admin

    # ---------- Entries ----------

    def get_entries(self, user_id: int):
        """The user's entries, newest first."""
        entries = [e for e in self.store.list_entries() if e.user_id == user_id]
        entries.sort(key=lambda e: e.date, reverse=True)
        return entries

    def get_all_entries(self, exclude_admin: bool = False):
        entries = self.store.list_entries()
        if exclude_admin:
            admin = self.admin_user()
            if admin is not None:
                entries = [e for e in entries if e.user_id != admin.id]
        return entries

    def add_entry(self, data) -> ActionResult:
        payload, errors = validate_payload(EntryIn, data)
        if errors:
            return ActionResult.fail(errors)

        if self.store.get_user(payload.user_id) is None:
            return ActionResult.fail({"user_id": ["User not found."]}, status=404)

        prompt = payload.prompt or self.store.load_settings().gratitude_prompt
        entry = JournalEntry(
            id=uuid.uuid4().hex,
            date=utc_now_iso(),
            mood_score=payload.mood_score,
            text=payload.text,
            user_id=payload.user_id,
            prompt=prompt,
        )
        self.store.save_entry(entry)
        logger.info("Entry %s added for user %s", entry.id, entry.user_id)
        return ActionResult.ok(status=201, entry=entry.to_dict())

    def update_entry(self, data) -> ActionResult:
        payload, errors = validate_payload(EntryUpdate, data)
        if errors:
            return ActionResult.fail(errors)

        entry = self.store.get_entry(payload.id)
        if entry is None:
            return ActionResult.fail({"form": ["Entry not found."]}, status=404)

        owner = self.store.get_user(payload.user_id)
        if entry.user_id != payload.user_id or owner is None or not owner.can_edit:
            return ActionResult.fail(
                {"form": ["You do not have permission to edit this entry."]}, status=403
            )

        entry.text = payload.text
        entry.mood_score = payload.mood_score
        self.store.save_entry(entry)
        return ActionResult.ok(entry=entry.to_dict())

    def weekly_archive(self, user_id: int) -> dict:
        groups, weeks = aggregation.group_entries_by_week(self.get_entries(user_id))
        return {
            "weeks": [
                {"week_start": week, "entries": [e.to_dict() for e in groups[week]]}
                for week in weeks
            ]
        }

    def mood_overview(self, user_id: int, year: Optional[int] = None) -> dict:
        entries = self.get_entries(user_id)
        return {
            "has_entries": bool(entries),
            "moods": aggregation.yearly_mood_counts(entries, year),
        }

    def admin_mood_overview(self, year: Optional[int] = None, per_user: bool = False) -> dict:
        entries = self.get_all_entries(exclude_admin=True)
        if per_user:
            rows, legend = aggregation.yearly_mood_counts_by_user(entries, self.store.list_users(), year)
            return {"has_entries": bool(entries), "moods": rows, "users": legend}
        return {
            "has_entries": bool(entries),
            "moods": aggregation.yearly_mood_counts(entries, year),
        }

    # ---------- Users ----------

    def get_users(self):
        return self.store.list_users()

    def _create(self, name, email, can_edit) -> ActionResult:
        reserved = self._is_reserved(name, email)
        if reserved:
            return ActionResult.fail(reserved)
        if self._email_taken(email):
            return ActionResult.fail({"email": ["This email is already in use."]})

        user = self.store.create_user(name, email=email, can_edit=can_edit)
        if user is None:
            return ActionResult.fail({"form": ["Could not save user."]}, status=500)
        logger.info("User %s created", user.id)
        return ActionResult.ok(status=201, user=user.to_dict())

    def add_user(self, data) -> ActionResult:
        payload, errors = validate_payload(UserIn, data)
        if errors:
            return ActionResult.fail(errors)
        return self._create(payload.name, payload.email, payload.can_edit)

    def sign_up(self, data) -> ActionResult:
        """Anonymous sign-up; new users may edit their own entries."""
        payload, errors = validate_payload(SignUpIn, data)
        if errors:
            return ActionResult.fail(errors)
        return self._create(payload.name, payload.email, True)

    def update_user(self, data) -> ActionResult:
        payload, errors = validate_payload(UserUpdate, data)
        if errors:
            return ActionResult.fail(errors)

        existing = self.store.get_user(payload.id)
        if existing is None:
            return ActionResult.fail({"form": ["User not found."]}, status=404)

        if is_admin(existing, self.admin_email):
            if payload.name != existing.name or (payload.email and payload.email != existing.email):
                return ActionResult.fail({"name": ["Cannot rename the Admin user."]})
            updated = make_user(existing.id, existing.name, existing.email, payload.can_edit)
        else:
            reserved = self._is_reserved(payload.name, payload.email)
            if reserved:
                return ActionResult.fail(reserved)
            if self._email_taken(payload.email, exclude_id=existing.id):
                return ActionResult.fail({"email": ["This email is already in use."]})
            updated = make_user(existing.id, payload.name, payload.email, payload.can_edit)

        self.store.save_user(updated)
        return ActionResult.ok(user=updated.to_dict())

    def delete_user(self, user_id: int) -> ActionResult:
        user = self.store.get_user(user_id)
        if user is None:
            return ActionResult.fail({"form": ["User not found."]}, status=404)
        if is_admin(user, self.admin_email):
            return ActionResult.fail({"form": ["Cannot delete the Admin user."]}, status=403)

        removed = self.store.delete_entries_for_user(user_id)
        self.store.delete_user(user_id)
        logger.info("User %s deleted along with %d entries", user_id, removed)
        return ActionResult.ok(deleted=user_id)

    # ---------- Settings ----------

    def get_settings(self) -> Settings:
        return self.store.load_settings()

    def update_settings(self, data) -> ActionResult:
        payload, errors = validate_payload(SettingsIn, data)
        if errors:
            return ActionResult.fail(errors)
        settings = Settings(
            gratitude_prompt=payload.gratitude_prompt,
            show_explanation=payload.show_explanation,
        )
        self.store.save_settings(settings)
        return ActionResult.ok(settings=settings.to_dict())

    # ---------- AI extras ----------

    def inspiration(self, user_id: int, mood_score: int):
        past = [
            {"id": e.id, "mood_score": e.mood_score, "text": e.text}
            for e in self.get_entries(user_id)
        ]
        return self.ai.find_similar_mood_entries(mood_score, past)

    def adjective_cloud(self, user_id: int, scale: str = "sqrt"):
        texts = [e.text for e in self.get_entries(user_id)]
        adjectives = self.ai.analyze_adjectives(texts)
        return {
            "adjectives": adjectives,
            "cloud": aggregation.word_cloud_sizes(adjectives, scale=scale),
        }

    def daily_prompt(self) -> str:
        return self.ai.generate_daily_prompt()

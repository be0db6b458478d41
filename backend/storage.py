"""
Persistence adapters for users, journal entries and the settings record.

Three interchangeable backends share the ``Store`` interface:

- ``MemoryStore``   lists held on the store instance (tests, demos)
- ``JsonFileStore`` one JSON document, read fully and rewritten fully on
                    every mutation
- ``SqlStore``      Flask-SQLAlchemy tables (see models.py)

Storage failures never reach the caller: reads fall back to defaults and
failed writes are logged. There is no locking around the
read-modify-write sequences; concurrent writers can lose updates.
"""
import copy
import json
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import EntryRow, SettingsRow, UserRow, db
from records import (
    JournalEntry,
    Settings,
    User,
    make_user,
    user_from_dict,
)

logger = logging.getLogger(__name__)


class Store:
    """Interface every backend implements."""

    backend_name = "abstract"

    # --- entries ---
    def list_entries(self) -> List[JournalEntry]:
        raise NotImplementedError

    def get_entry(self, entry_id: str) -> Optional[JournalEntry]:
        for entry in self.list_entries():
            if entry.id == entry_id:
                return entry
        return None

    def save_entry(self, entry: JournalEntry) -> None:
        """Insert a new entry (newest first) or replace one with the same id."""
        raise NotImplementedError

    def delete_entries_for_user(self, user_id: int) -> int:
        raise NotImplementedError

    # --- users ---
    def list_users(self) -> List[User]:
        raise NotImplementedError

    def get_user(self, user_id: int) -> Optional[User]:
        for user in self.list_users():
            if user.id == user_id:
                return user
        return None

    def create_user(self, name: str, email: Optional[str] = None, can_edit: bool = False) -> Optional[User]:
        raise NotImplementedError

    def save_user(self, user: User) -> None:
        raise NotImplementedError

    def delete_user(self, user_id: int) -> bool:
        raise NotImplementedError

    # --- settings ---
    def load_settings(self) -> Settings:
        raise NotImplementedError

    def save_settings(self, settings: Settings) -> None:
        raise NotImplementedError


def _next_user_id(users) -> int:
    return max((u.id for u in users), default=0) + 1


def _upsert_entry(entries: List[JournalEntry], entry: JournalEntry) -> None:
    for i, existing in enumerate(entries):
        if existing.id == entry.id:
            entries[i] = entry
            return
    entries.insert(0, entry)


def _upsert_user(users: List[User], user: User) -> None:
    for i, existing in enumerate(users):
        if existing.id == user.id:
            users[i] = user
            return
    users.append(user)


class MemoryStore(Store):
    backend_name = "memory"

    def __init__(self, users=None, entries=None, settings: Optional[Settings] = None):
        self._users: List[User] = list(users or [])
        self._entries: List[JournalEntry] = list(entries or [])
        self._settings = settings

    def list_entries(self):
        return list(self._entries)

    def save_entry(self, entry):
        _upsert_entry(self._entries, entry)

    def delete_entries_for_user(self, user_id):
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.user_id != user_id]
        return before - len(self._entries)

    def list_users(self):
        return list(self._users)

    def create_user(self, name, email=None, can_edit=False):
        user = make_user(id=_next_user_id(self._users), name=name, email=email, can_edit=can_edit)
        self._users.append(user)
        return user

    def save_user(self, user):
        _upsert_user(self._users, user)

    def delete_user(self, user_id):
        before = len(self._users)
        self._users = [u for u in self._users if u.id != user_id]
        return len(self._users) < before

    def load_settings(self):
        if self._settings is None:
            self._settings = Settings()
        return copy.copy(self._settings)

    def save_settings(self, settings):
        self._settings = copy.copy(settings)


class JsonFileStore(Store):
    """
    Single JSON document on disk:

        {"users": [...], "entries": [...], "settings": {...}}

    A missing or unreadable file yields the seed document, which is expected
    on first run or in a read-only environment. Malformed records are skipped
    with a warning. Before an unreadable or partly malformed file is rewritten
    it is moved aside to ``<path>.corrupt-<timestamp>``; if that fails the
    write is refused.
    """

    backend_name = "json"

    def __init__(self, path: str, seed: Optional[dict] = None):
        self.path = path
        self.seed = seed or {"users": [], "entries": []}
        self._needs_backup = False

    # ---------- raw document ----------

    def _read(self) -> dict:
        self._needs_backup = False
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value is not an object")
            return data
        except FileNotFoundError:
            logger.warning("Could not read %s. Using seed data (expected on first run).", self.path)
        except (OSError, ValueError) as e:
            self._needs_backup = True
            logger.warning("Could not read %s (%s). Using seed data.", self.path, e)
        return copy.deepcopy(self.seed)

    def _back_up_original(self) -> bool:
        """Move an unreadable or partly malformed file aside before it is rewritten."""
        if not self._needs_backup or not os.path.exists(self.path):
            return True
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        backup = f"{self.path}.corrupt-{stamp}"
        try:
            os.replace(self.path, backup)
        except OSError as e:
            logger.error("Could not back up unreadable %s (%s). Refusing to overwrite it.", self.path, e)
            return False
        logger.error("Moved unreadable %s to %s before rewriting it.", self.path, backup)
        self._needs_backup = False
        return True

    def _write(self, data: dict) -> None:
        if not self._back_up_original():
            return
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
        except OSError as e:
            logger.warning("Could not write to %s (%s). Changes were not persisted.", self.path, e)

    def _records(self, data, key, parse) -> list:
        """Parse one collection, skipping records that do not fit the schema."""
        raw_records = data.get(key) or []
        if not isinstance(raw_records, list):
            logger.warning("Ignoring %r in %s: expected a list.", key, self.path)
            self._needs_backup = True
            return []
        records = []
        for raw in raw_records:
            try:
                records.append(parse(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed %s record in %s (%s): %r", key, self.path, e, raw)
                self._needs_backup = True
        return records

    def _entries(self, data) -> List[JournalEntry]:
        return self._records(data, "entries", JournalEntry.from_dict)

    def _users(self, data) -> List[User]:
        return self._records(data, "users", user_from_dict)

    # ---------- entries ----------

    def list_entries(self):
        return self._entries(self._read())

    def save_entry(self, entry):
        data = self._read()
        entries = self._entries(data)
        _upsert_entry(entries, entry)
        data["entries"] = [e.to_dict() for e in entries]
        self._write(data)

    def delete_entries_for_user(self, user_id):
        data = self._read()
        entries = self._entries(data)
        kept = [e for e in entries if e.user_id != user_id]
        data["entries"] = [e.to_dict() for e in kept]
        self._write(data)
        return len(entries) - len(kept)

    # ---------- users ----------

    def list_users(self):
        return self._users(self._read())

    def create_user(self, name, email=None, can_edit=False):
        data = self._read()
        users = self._users(data)
        user = make_user(id=_next_user_id(users), name=name, email=email, can_edit=can_edit)
        users.append(user)
        data["users"] = [u.to_dict() for u in users]
        self._write(data)
        return user

    def save_user(self, user):
        data = self._read()
        users = self._users(data)
        _upsert_user(users, user)
        data["users"] = [u.to_dict() for u in users]
        self._write(data)

    def delete_user(self, user_id):
        data = self._read()
        users = self._users(data)
        kept = [u for u in users if u.id != user_id]
        if len(kept) == len(users):
            return False
        data["users"] = [u.to_dict() for u in kept]
        self._write(data)
        return True

    # ---------- settings ----------

    def load_settings(self):
        data = self._read()
        if "settings" not in data:
            settings = Settings()
            data["settings"] = settings.to_dict()
            self._write(data)
            return settings
        return Settings.from_dict(data["settings"])

    def save_settings(self, settings):
        data = self._read()
        data["settings"] = settings.to_dict()
        self._write(data)


class SqlStore(Store):
    """Flask-SQLAlchemy backend. Must be used inside an app context."""

    backend_name = "sql"

    def __init__(self, database=db):
        self.db = database

    def _rollback(self, action: str, error: Exception) -> None:
        self.db.session.rollback()
        logger.error("Database error while %s: %s", action, error)

    def list_entries(self):
        try:
            rows = self.db.session.execute(
                self.db.select(EntryRow).order_by(EntryRow.date.desc())
            ).scalars().all()
            return [r.to_record() for r in rows]
        except SQLAlchemyError as e:
            self._rollback("listing entries", e)
            return []

    def get_entry(self, entry_id):
        try:
            row = self.db.session.get(EntryRow, entry_id)
            return row.to_record() if row else None
        except SQLAlchemyError as e:
            self._rollback("loading entry", e)
            return None

    def save_entry(self, entry):
        try:
            self.db.session.merge(EntryRow(
                id=entry.id,
                date=entry.date,
                mood_score=entry.mood_score,
                text=entry.text,
                prompt=entry.prompt,
                user_id=entry.user_id,
            ))
            self.db.session.commit()
        except SQLAlchemyError as e:
            self._rollback("saving entry", e)

    def delete_entries_for_user(self, user_id):
        try:
            count = self.db.session.query(EntryRow).filter_by(user_id=user_id).delete()
            self.db.session.commit()
            return count
        except SQLAlchemyError as e:
            self._rollback("deleting entries", e)
            return 0

    def list_users(self):
        try:
            rows = self.db.session.execute(
                self.db.select(UserRow).order_by(UserRow.id)
            ).scalars().all()
            return [r.to_record() for r in rows]
        except SQLAlchemyError as e:
            self._rollback("listing users", e)
            return []

    def get_user(self, user_id):
        try:
            row = self.db.session.get(UserRow, user_id)
            return row.to_record() if row else None
        except SQLAlchemyError as e:
            self._rollback("loading user", e)
            return None

    def create_user(self, name, email=None, can_edit=False):
        try:
            row = UserRow(name=name, email=email, can_edit=can_edit)
            self.db.session.add(row)
            self.db.session.commit()
            return row.to_record()
        except SQLAlchemyError as e:
            self._rollback("creating user", e)
            return None

    def save_user(self, user):
        try:
            self.db.session.merge(UserRow(
                id=user.id,
                name=user.name,
                email=user.email,
                can_edit=user.can_edit,
            ))
            self.db.session.commit()
        except SQLAlchemyError as e:
            self._rollback("saving user", e)

    def delete_user(self, user_id):
        try:
            row = self.db.session.get(UserRow, user_id)
            if row is None:
                return False
            self.db.session.query(EntryRow).filter_by(user_id=user_id).delete()
            self.db.session.delete(row)
            self.db.session.commit()
            return True
        except SQLAlchemyError as e:
            self._rollback("deleting user", e)
            return False

    def load_settings(self):
        try:
            row = self.db.session.get(SettingsRow, 1)
            if row is None:
                row = SettingsRow(id=1, gratitude_prompt=Settings().gratitude_prompt, show_explanation=True)
                self.db.session.add(row)
                self.db.session.commit()
            return row.to_record()
        except SQLAlchemyError as e:
            self._rollback("loading settings", e)
            return Settings()

    def save_settings(self, settings):
        try:
            self.db.session.merge(SettingsRow(
                id=1,
                gratitude_prompt=settings.gratitude_prompt,
                show_explanation=settings.show_explanation,
            ))
            self.db.session.commit()
        except SQLAlchemyError as e:
            self._rollback("saving settings", e)


def build_store(app) -> Store:
    """Create the store selected by STORAGE_BACKEND for this app."""
    backend = (app.config.get("STORAGE_BACKEND") or "json").lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "json":
        return JsonFileStore(app.config["JOURNAL_DATA_FILE"])
    if backend == "sql":
        db.init_app(app)
        with app.app_context():
            db.create_all()
        return SqlStore(db)
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")

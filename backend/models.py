from flask_sqlalchemy import SQLAlchemy

from records import (
    DEFAULT_GRATITUDE_PROMPT,
    JournalEntry,
    Settings,
    make_user,
)

db = SQLAlchemy()


class UserRow(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    # NULL for profile-only users
    email = db.Column(db.String(255), unique=True, nullable=True)
    can_edit = db.Column(db.Boolean, default=False, nullable=False)

    def to_record(self):
        return make_user(id=self.id, name=self.name, email=self.email, can_edit=self.can_edit)

    def __repr__(self):
        return f"<UserRow id={self.id}>"


class EntryRow(db.Model):
    __tablename__ = "journal_entries"

    id = db.Column(db.String(64), primary_key=True)
    # ISO-8601 string, as stored by the file backends
    date = db.Column(db.String(40), nullable=False, index=True)
    mood_score = db.Column(db.Integer, nullable=False)
    text = db.Column(db.Text, nullable=False)
    prompt = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    def to_record(self) -> JournalEntry:
        return JournalEntry(
            id=self.id,
            date=self.date,
            mood_score=self.mood_score,
            text=self.text,
            user_id=self.user_id,
            prompt=self.prompt,
        )

    def __repr__(self):
        return f"<EntryRow id={self.id}>"


class SettingsRow(db.Model):
    """Single-row table; the record always lives at id=1."""
    __tablename__ = "settings"

    id = db.Column(db.Integer, primary_key=True)
    gratitude_prompt = db.Column(db.Text, nullable=False, default=DEFAULT_GRATITUDE_PROMPT)
    show_explanation = db.Column(db.Boolean, nullable=False, default=True)

    def to_record(self) -> Settings:
        return Settings(
            gratitude_prompt=self.gratitude_prompt,
            show_explanation=self.show_explanation,
        )

import pytest

import gpt_service
from app import create_app
from journal_service import JournalService
from records import JournalEntry
from storage import MemoryStore

ADMIN_EMAIL = "admin@example.com"
PASSCODE = "letmein"


class FakeAI:
    """Stands in for gpt_service; records what it was asked."""

    def __init__(self, similar=None, adjectives=None, prompt="What made today good?"):
        self.similar = similar or []
        self.adjectives = adjectives or []
        self.prompt = prompt
        self.calls = []

    def find_similar_mood_entries(self, current_mood_score, past_entries):
        self.calls.append(("similar", current_mood_score, past_entries))
        return self.similar

    def analyze_adjectives(self, texts):
        self.calls.append(("adjectives", texts))
        return self.adjectives

    def generate_daily_prompt(self):
        self.calls.append(("prompt",))
        return self.prompt


def make_entry(id, date, mood_score=3, user_id=2, text="Grateful for the sunshine"):
    return JournalEntry(id=id, date=date, mood_score=mood_score, text=text, user_id=user_id)


@pytest.fixture(autouse=True)
def restore_llm_settings(monkeypatch):
    """create_app points gpt_service at its config; undo that after each test."""
    for name in ("OPENROUTER_API_KEY", "OPENROUTER_MODEL", "PUBLIC_APP_URL"):
        monkeypatch.setattr(gpt_service, name, getattr(gpt_service, name))


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store, fake_ai):
    svc = JournalService(store, admin_email=ADMIN_EMAIL, ai=fake_ai)
    svc.ensure_admin()
    return svc


@pytest.fixture
def app():
    return create_app({
        "TESTING": True,
        "STORAGE_BACKEND": "memory",
        "ADMIN_EMAIL": ADMIN_EMAIL,
        "ADMIN_PASSCODE": PASSCODE,
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Passcode": PASSCODE}

import os
from dotenv import load_dotenv

# Load .env locally; on Render, env vars are injected automatically.
load_dotenv()


class Config:
    """Central configuration for the journal service."""

    # memory | json | sql
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "json")
    JOURNAL_DATA_FILE = os.getenv("JOURNAL_DATA_FILE", "journal_data.json")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///journal.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
    ADMIN_PASSCODE = os.getenv("ADMIN_PASSCODE", "admin123")

    FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN")

    OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
    OPENROUTER_MODEL = os.getenv(
        "OPENROUTER_MODEL",
        "meta-llama/llama-3.1-8b-instruct:free",
    )
    PUBLIC_APP_URL = os.getenv("PUBLIC_APP_URL", "")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", "5000"))

import sys
from pathlib import Path

import pytest

# Make the flat-layout packages (app, config) importable without installation
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from app import create_app, db  # noqa: E402
from config import reset_config  # noqa: E402

_ENV_VARS = (
    "DB_PATH",
    "DB_READ_ONLY",
    "GEMINI_API_KEY",
    "GEMINI_MODEL_NAME",
    "AI_CONTEXT_MAX_CHARS",
    "MAX_UPLOAD_MB",
    "SECRET_KEY",
    "CORS_ALLOWED_ORIGINS",
)


@pytest.fixture
def app(monkeypatch):
    """Flask app on an in-memory database with a pushed app context."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()

    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
    reset_config()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_bank_text():
    """A small question bank with inline answers on the first question only."""
    return "\n".join([
        "1. What is the capital of France?",
        "A) Berlin",
        "B) Paris",
        "C) Madrid",
        "Answer: B",
        "2. Which gas do plants absorb?",
        "A) Oxygen",
        "B) Carbon dioxide",
        "3) Largest planet?",
        "(a) Jupiter",
        "(b) Mars",
    ])

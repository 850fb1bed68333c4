"""Base defaults shared by every configuration profile.

Only constants live here; environment lookups happen in runtime.py and ai.py.
"""

from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"

# Database
DEFAULT_DB_PATH = BASE_DIR / "data" / "examnexus.db"
DEFAULT_DB_URI = f"sqlite:///{DEFAULT_DB_PATH.as_posix()}"
TESTING_DB_URI = "sqlite://"
DEFAULT_AUTO_CREATE_DB = False

# Uploads
DEFAULT_MAX_UPLOAD_MB = 20
DEFAULT_ALLOWED_EXTENSIONS = frozenset({"pdf"})

# AI/Gemini
DEFAULT_GEMINI_MODEL_NAME = "gemini-2.0-flash-lite"
DEFAULT_GEMINI_MAX_OUTPUT_TOKENS = 4096
DEFAULT_AI_CONTEXT_MAX_CHARS = 20000
DEFAULT_GENERATION_TEMPERATURE = 0.4
DEFAULT_GRADING_TEMPERATURE = 0.1
DEFAULT_AI_RETRY_ATTEMPTS = 3

# Question import
DEFAULT_QUESTION_POINTS = 5

# CORS
DEFAULT_CORS_ALLOWED_ORIGINS = "http://localhost:3000"
DEFAULT_CORS_ALLOWED_ORIGINS_PROD = ""
CORS_ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
CORS_ALLOWED_HEADERS = "Content-Type, Authorization"
CORS_MAX_AGE_SECONDS = 600

"""Configuration schema dataclasses.

Minimal dataclasses for runtime and AI configuration.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RuntimeConfig:
    """Runtime configuration - environment-driven settings."""

    # Database
    db_uri: str
    db_read_only: bool = False
    auto_create_db: bool = False

    # File handling
    max_content_length: int = 20 * 1024 * 1024  # 20MB
    allowed_extensions: frozenset = field(default_factory=lambda: frozenset({"pdf"}))

    # CORS
    cors_allowed_origins: str = "http://localhost:3000"

    def __post_init__(self):
        """Validate after initialization."""
        if not self.db_uri:
            raise ValueError("Database URI must not be empty")
        if self.max_content_length <= 0:
            raise ValueError("MAX_UPLOAD_MB must be > 0")
        if not isinstance(self.allowed_extensions, frozenset):
            self.allowed_extensions = frozenset(self.allowed_extensions)


@dataclass
class AiConfig:
    """AI configuration - Gemini model selection and request limits."""

    gemini_api_key: Optional[str] = None
    gemini_model_name: str = "gemini-2.0-flash-lite"
    gemini_max_output_tokens: int = 4096

    # Source text beyond this many characters is cut before prompting
    context_max_chars: int = 20000

    generation_temperature: float = 0.4
    grading_temperature: float = 0.1
    retry_attempts: int = 3

    def __post_init__(self):
        """Validate after initialization."""
        if self.gemini_max_output_tokens <= 0:
            raise ValueError("GEMINI_MAX_OUTPUT_TOKENS must be > 0")
        if self.context_max_chars <= 0:
            raise ValueError("AI_CONTEXT_MAX_CHARS must be > 0")
        if not 0.0 <= self.generation_temperature <= 2.0:
            raise ValueError("AI_GENERATION_TEMPERATURE must be between 0.0 and 2.0")
        if not 0.0 <= self.grading_temperature <= 2.0:
            raise ValueError("AI_GRADING_TEMPERATURE must be between 0.0 and 2.0")
        if self.retry_attempts < 1:
            raise ValueError("AI_RETRY_ATTEMPTS must be >= 1")


@dataclass
class AppConfig:
    """Application configuration - composition of runtime and AI configs."""

    runtime: RuntimeConfig
    ai: AiConfig

    # Flask-specific settings
    secret_key: str = "dev-secret-key-change-in-production"
    profile: str = "default"

    @property
    def is_production(self) -> bool:
        return self.profile == "production"


__all__ = ["RuntimeConfig", "AiConfig", "AppConfig"]

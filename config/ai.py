"""AI configuration - Gemini settings.

Reads AI-related environment variables with clear namespacing.
"""

import os

from .base import (
    DEFAULT_GEMINI_MODEL_NAME,
    DEFAULT_GEMINI_MAX_OUTPUT_TOKENS,
    DEFAULT_AI_CONTEXT_MAX_CHARS,
    DEFAULT_GENERATION_TEMPERATURE,
    DEFAULT_GRADING_TEMPERATURE,
    DEFAULT_AI_RETRY_ATTEMPTS,
)
from .runtime import _env_int
from .schema import AiConfig


def _env_float(name, default):
    """Read a float environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def get_ai_config() -> AiConfig:
    """
    Build AI configuration from environment variables.

    Returns:
        AiConfig instance
    """
    return AiConfig(
        gemini_api_key=os.environ.get("GEMINI_API_KEY"),
        gemini_model_name=os.environ.get("GEMINI_MODEL_NAME", DEFAULT_GEMINI_MODEL_NAME),
        gemini_max_output_tokens=_env_int(
            "GEMINI_MAX_OUTPUT_TOKENS", default=DEFAULT_GEMINI_MAX_OUTPUT_TOKENS
        ),
        context_max_chars=_env_int(
            "AI_CONTEXT_MAX_CHARS", default=DEFAULT_AI_CONTEXT_MAX_CHARS
        ),
        generation_temperature=_env_float(
            "AI_GENERATION_TEMPERATURE", default=DEFAULT_GENERATION_TEMPERATURE
        ),
        grading_temperature=_env_float(
            "AI_GRADING_TEMPERATURE", default=DEFAULT_GRADING_TEMPERATURE
        ),
        retry_attempts=_env_int("AI_RETRY_ATTEMPTS", default=DEFAULT_AI_RETRY_ATTEMPTS),
    )


__all__ = ["get_ai_config"]

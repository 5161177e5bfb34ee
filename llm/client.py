"""Shared Gemini client factory for the AI-assisted endpoints."""

from __future__ import annotations

from google import genai
from google.genai import types

from config import GEMINI_API_KEY, GEMINI_TIMEOUT_MS


class ConfigurationError(Exception):
    """Raised when AI features are used without a Gemini API key."""


def is_ai_configured() -> bool:
    return bool(GEMINI_API_KEY)


def get_client() -> genai.Client:
    if not GEMINI_API_KEY:
        raise ConfigurationError(
            "GEMINI_API_KEY is missing. Set it in the server environment to enable AI features."
        )
    return genai.Client(
        api_key=GEMINI_API_KEY,
        http_options=types.HttpOptions(timeout=GEMINI_TIMEOUT_MS),
    )

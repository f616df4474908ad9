"""Configuration and environment handling."""

import logging
import os
import sys
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger("framenote.config")

REQUIRED_PACKAGES = ["flask", "requests", "pydantic", "google-genai", "python-dotenv"]

DEFAULT_API_URL = "http://localhost:3000/api"
DEFAULT_SUGGESTION_MODEL = "gemini-2.5-flash"
DEFAULT_HTTP_TIMEOUT = 30.0


def check_dependencies() -> bool:
    """Check if required packages are installed."""
    try:
        from dotenv import load_dotenv  # noqa: F401
        from google import genai  # noqa: F401
        import flask  # noqa: F401
        import pydantic  # noqa: F401
        import requests  # noqa: F401

        return True
    except ImportError:
        return False


@lru_cache
def _load_env() -> None:
    from dotenv import load_dotenv

    load_dotenv()


@lru_cache
def get_api_url() -> str:
    """Get the Annotation API base URL.

    Set FRAMENOTE_API_URL environment variable to override.
    """
    _load_env()
    return os.environ.get("FRAMENOTE_API_URL", DEFAULT_API_URL).rstrip("/")


def get_home_dir() -> Path:
    """Directory holding local state (database, cached user)."""
    _load_env()
    home = os.environ.get("FRAMENOTE_HOME")
    return Path(home) if home else Path.home() / ".framenote"


def get_db_path() -> Path:
    """Database file used by the annotation server."""
    _load_env()
    override = os.environ.get("FRAMENOTE_DB_PATH")
    return Path(override) if override else get_home_dir() / "framenote.db"


def get_http_timeout() -> float:
    """Timeout in seconds for calls to the Annotation API."""
    _load_env()
    raw = os.environ.get("FRAMENOTE_HTTP_TIMEOUT")
    if not raw:
        return DEFAULT_HTTP_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric FRAMENOTE_HTTP_TIMEOUT=%r", raw)
        return DEFAULT_HTTP_TIMEOUT


def get_suggestion_model() -> str:
    _load_env()
    return os.environ.get("FRAMENOTE_SUGGESTION_MODEL", DEFAULT_SUGGESTION_MODEL)


def get_gemini_api_key() -> str:
    """Get Gemini API key from environment.

    Raises ValueError when GEMINI_API_KEY is unset, for server-side callers.
    """
    _load_env()
    key = os.environ.get("GEMINI_API_KEY")
    if not key:
        raise ValueError("GEMINI_API_KEY environment variable must be set")
    return key


def load_api_key() -> str:
    """Load the Gemini API key for command-line use, exiting when it is missing."""
    try:
        return get_gemini_api_key()
    except ValueError:
        logger.error("GEMINI_API_KEY not found in .env file")
        sys.exit(1)


def get_gemini_client(api_key: str = None):
    """Get a configured Gemini client."""
    from google import genai

    if api_key is None:
        api_key = get_gemini_api_key()
    return genai.Client(api_key=api_key)

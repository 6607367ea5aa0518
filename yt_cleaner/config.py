"""Configuration constants, upstream endpoints, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Chunk sizes, polling budgets, model names, and
upstream URLs are plain module-level values, not buried in logic, so
both humans and coding agents can modify them confidently.

HOW: python-dotenv loads the .env file on import. Constants are read
from the environment with sensible defaults. The load_*_key() functions
provide the credential lookups for the rewrite backend and the optional
transcript proxy.

RULES:
- API keys are loaded from .env via python-dotenv, never hardcoded
- ANTHROPIC_API_KEY is required to serve requests; SUPADATA_API_KEY is optional
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the server is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# Rewrite backend
# ---------------------------------------------------------------------------

ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-haiku-4-5")
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "4096"))

WORDS_PER_CHUNK = int(os.getenv("WORDS_PER_CHUNK", "3000"))
"""Number of words submitted to the rewrite backend per request."""

# ---------------------------------------------------------------------------
# Transcript sources
# ---------------------------------------------------------------------------

SUPADATA_BASE_URL = os.getenv("SUPADATA_BASE_URL", "https://api.supadata.ai/v1")
SUPADATA_POLL_INTERVAL_S = float(os.getenv("SUPADATA_POLL_INTERVAL_S", "3.0"))
SUPADATA_POLL_MAX_ATTEMPTS = int(os.getenv("SUPADATA_POLL_MAX_ATTEMPTS", "30"))

YOUTUBE_BASE_URL = os.getenv("YOUTUBE_BASE_URL", "https://www.youtube.com")
ANDROID_CLIENT_VERSION = os.getenv("ANDROID_CLIENT_VERSION", "20.10.38")

HTTP_TIMEOUT_S = float(os.getenv("HTTP_TIMEOUT_S", "30.0"))

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

PIPELINE_TIME_BUDGET_S = float(os.getenv("PIPELINE_TIME_BUDGET_S", "300"))
"""Wall-clock limit for one request; the stream is cut when it is exceeded."""

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
API_URL = os.getenv("API_URL", "http://localhost:8000")


def load_anthropic_key() -> str:
    """Load the Anthropic API key from the environment.

    WHY: Every chunk rewrite needs the key. The endpoint checks it before
    the stream starts so a misconfigured server answers with a plain 500.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("ANTHROPIC_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "Anthropic API key not configured. "
            "Add ANTHROPIC_API_KEY to the .env file."
        )
    return key


def load_supadata_key() -> str | None:
    """Return the server-side Supadata key, or None when not configured."""
    key = os.getenv("SUPADATA_API_KEY", "").strip()
    return key or None

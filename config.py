"""Central configuration for the news feed ingestion and enrichment pipeline."""

import os

from dotenv import load_dotenv

load_dotenv()


# --- Data Store Config (Notion) ---
NOTION_API_KEY = os.getenv("NOTION_API_KEY", "")
NOTION_SOURCES_DATABASE_ID = os.getenv("NOTION_SOURCES_DATABASE_ID", "")
NOTION_TOPICS_DATABASE_ID = os.getenv("NOTION_TOPICS_DATABASE_ID", "")
NOTION_ARTICLES_DATABASE_ID = os.getenv("NOTION_ARTICLES_DATABASE_ID", "")

# --- Generation Backend Config (Gemini, OpenAI-compatible endpoint) ---
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/"
)
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")

_llm_timeout = os.getenv("LLM_TIMEOUT_SECONDS")
LLM_TIMEOUT_SECONDS = float(_llm_timeout) if _llm_timeout else 60.0

# --- Feed Fetch Config ---
_feed_timeout = os.getenv("FEED_TIMEOUT_SECONDS")
FEED_TIMEOUT_SECONDS = float(_feed_timeout) if _feed_timeout else 20.0

# --- Pipeline Config ---
# Caps external generation calls per run regardless of how many articles were collected.
MAX_TOPICS_PER_RUN = 5

LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

BIAS_RATINGS = ("Left", "Center", "Right")


def validate_config(mock: bool = False) -> tuple[bool, list[str]]:
    """
    Check that every required setting is present.
    Returns (ok, errors) so the caller can report all missing values at once.
    """
    errors: list[str] = []

    if not NOTION_API_KEY:
        errors.append("Missing data store credentials: NOTION_API_KEY is not set")
    for name, value in (
        ("NOTION_SOURCES_DATABASE_ID", NOTION_SOURCES_DATABASE_ID),
        ("NOTION_TOPICS_DATABASE_ID", NOTION_TOPICS_DATABASE_ID),
        ("NOTION_ARTICLES_DATABASE_ID", NOTION_ARTICLES_DATABASE_ID),
    ):
        if not value:
            errors.append(f"Missing data store endpoint: {name} is not set")

    if not mock and not GEMINI_API_KEY:
        errors.append("Missing GEMINI_API_KEY")

    return (not errors), errors

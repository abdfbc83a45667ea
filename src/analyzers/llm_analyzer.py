"""
LLM Analyzer Module
Builds the enrichment prompt, calls the generation backend (Gemini through its
OpenAI-compatible endpoint) and turns the reply into an EnrichmentResult.
"""

import json
import logging
import re

from openai import OpenAI

from config import GEMINI_API_KEY, GEMINI_BASE_URL, GEMINI_MODEL, LLM_TIMEOUT_SECONDS
from src.models import CollectedArticle, EnrichmentResult

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description"
PREVIEW_CHARS = 100

CODE_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

_STRING_FIELDS = (
    "topic",
    "headline",
    "ai_summary",
    "bias_rating",
    "left_emphasis",
    "right_emphasis",
    "common_ground",
)
_LIST_FIELDS = ("key_points", "tags")


class GenerationError(Exception):
    """The generation backend returned nothing usable."""


class EnrichmentParseError(ValueError):
    """Backend text is not JSON, or not an object of the expected shape."""

    def __init__(self, message: str, text: str):
        super().__init__(message)
        self.message = message
        self.text = text

    @property
    def preview(self) -> str:
        return self.text[:PREVIEW_CHARS]


PROMPT_TEMPLATE = """\
Analyze this Canadian news article:
Title: {title}
Description: {description}
Source: {source}

Provide a JSON response with:
- topic: Short topic name (e.g., "Housing Crisis")
- headline: Neutral, catchy headline
- ai_summary: 2-3 sentence summary
- bias_rating: "Left", "Center", or "Right"
- key_points: Array of 3 key bullet points
- tags: Array of 2-3 relevant tags
- left_emphasis: What left-leaning perspective focuses on (1 sentence)
- right_emphasis: What right-leaning perspective focuses on (1 sentence)
- common_ground: What both sides agree on (1 sentence)

Return ONLY one raw JSON object with exactly these keys, no markdown and no other text.
"""


def build_prompt(article: CollectedArticle) -> str:
    return PROMPT_TEMPLATE.format(
        title=article.title,
        description=article.description or NO_DESCRIPTION,
        source=article.source.name,
    )


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers that models add despite instructions."""
    return CODE_FENCE_RE.sub("", text or "").strip()


def parse_enrichment(text: str) -> EnrichmentResult:
    """
    Strictly parse backend output into an EnrichmentResult.
    Raises EnrichmentParseError when the cleaned text is not a JSON object
    carrying every expected field with the expected type.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise EnrichmentParseError(f"invalid JSON ({exc.msg})", cleaned) from exc

    if not isinstance(data, dict):
        raise EnrichmentParseError(
            f"expected a JSON object, got {type(data).__name__}", cleaned
        )

    missing = [key for key in _STRING_FIELDS + _LIST_FIELDS if key not in data]
    if missing:
        raise EnrichmentParseError(f"missing keys: {', '.join(missing)}", cleaned)

    for key in _STRING_FIELDS:
        if not isinstance(data[key], str):
            raise EnrichmentParseError(f"'{key}' must be a string", cleaned)
    for key in _LIST_FIELDS:
        value = data[key]
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise EnrichmentParseError(f"'{key}' must be a list of strings", cleaned)

    return EnrichmentResult(
        topic=data["topic"],
        headline=data["headline"],
        ai_summary=data["ai_summary"],
        bias_rating=data["bias_rating"],
        key_points=list(data["key_points"]),
        tags=list(data["tags"]),
        left_emphasis=data["left_emphasis"],
        right_emphasis=data["right_emphasis"],
        common_ground=data["common_ground"],
    )


class GeminiBackend:
    """generate(prompt) -> text over the OpenAI-compatible Gemini API."""

    def __init__(
        self,
        api_key: str = GEMINI_API_KEY,
        model: str = GEMINI_MODEL,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = LLM_TIMEOUT_SECONDS,
        client: OpenAI | None = None,
    ):
        if client is None:
            if not api_key:
                raise ValueError("Missing GEMINI_API_KEY")
            # No client-side retries: a failed article is skipped, not retried.
            client = OpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        self.client = client
        self.model = model
        self.timeout = timeout

    def generate(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
            timeout=self.timeout,
        )
        text = _message_to_text(response.choices[0].message)
        if not text:
            finish_reason = getattr(response.choices[0], "finish_reason", "unknown")
            raise GenerationError(f"Empty response from model (finish_reason={finish_reason})")

        preview = text[:300]
        suffix = "..." if len(text) > 300 else ""
        logger.info(f"[LLM] Raw response ({len(text)} chars): {preview}{suffix}")
        return text


def _message_to_text(message: object) -> str:
    content = getattr(message, "content", None)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                text = item.get("text") or item.get("content")
                if isinstance(text, str):
                    parts.append(text)
            else:
                text = getattr(item, "text", None)
                if isinstance(text, str):
                    parts.append(text)
        return "\n".join(p for p in parts if p).strip()
    return ""


class MockBackend:
    """Canned backend for offline runs (--mock)."""

    def __init__(self) -> None:
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        title_match = re.search(r"^Title: (.*)$", prompt, re.MULTILINE)
        title = title_match.group(1).strip() if title_match else "Untitled"
        payload = {
            "topic": f"[TEST] {title[:60]}",
            "headline": title,
            "ai_summary": "This is a test summary.",
            "bias_rating": "Center",
            "key_points": ["Point one", "Point two", "Point three"],
            "tags": ["test", "mock"],
            "left_emphasis": "Mock left emphasis.",
            "right_emphasis": "Mock right emphasis.",
            "common_ground": "Mock common ground.",
        }
        return "```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"

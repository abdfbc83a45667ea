"""
Feed fetcher.
Downloads the feed text of every active source, one at a time. A failing
source is logged and skipped so the remaining sources still run.
"""

import codecs
import logging
import re

import requests

from config import FEED_TIMEOUT_SECONDS
from src.models import NewsSource
from src.run_context import RunContext

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/rss+xml, application/xml, text/xml, */*",
}

DEFAULT_ENCODING = "utf-8"
XML_ENCODING_RE = re.compile(rb"""^\s*<\?xml[^>]*?encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")
CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?([A-Za-z0-9._-]+)", re.IGNORECASE)


def build_session() -> requests.Session:
    """Plain session without automatic retries; a failed source is simply skipped."""
    session = requests.Session()
    session.headers.update(HEADERS)
    return session


def fetch_feed(session: requests.Session, url: str, timeout: float = FEED_TIMEOUT_SECONDS) -> requests.Response:
    return session.get(url, timeout=timeout)


def _known_encoding(name: str | None) -> str | None:
    if not name:
        return None
    try:
        return codecs.lookup(name).name
    except LookupError:
        logger.warning("[FETCH] Unknown feed encoding %r, ignoring", name)
        return None


def feed_encoding(content: bytes, content_type: str = "") -> str:
    """
    Pick the encoding for a feed body.
    An explicit charset in Content-Type wins, then the XML declaration,
    then UTF-8. requests' own text/* fallback (ISO-8859-1) is never used.
    """
    header = CHARSET_RE.search(content_type or "")
    encoding = _known_encoding(header.group(1) if header else None)
    if encoding:
        return encoding

    declared = XML_ENCODING_RE.match(content.lstrip(codecs.BOM_UTF8)[:200])
    encoding = _known_encoding(declared.group(1).decode("ascii") if declared else None)
    return encoding or DEFAULT_ENCODING


def decode_feed(response: requests.Response) -> str:
    content = response.content or b""
    encoding = feed_encoding(content, response.headers.get("Content-Type", ""))
    if encoding.replace("_", "-") in ("utf-8", "utf8"):
        encoding = "utf-8-sig"
    return content.decode(encoding, errors="replace")


def fetch_all(
    sources: list[NewsSource],
    context: RunContext,
    session: requests.Session | None = None,
    timeout: float = FEED_TIMEOUT_SECONDS,
) -> list[tuple[NewsSource, str]]:
    """
    Fetch each source in order.
    Returns (source, feed_text) pairs for the sources that succeeded.
    Only 2xx responses count as fetched.
    """
    owns_session = session is None
    if owns_session:
        session = build_session()
    fetched: list[tuple[NewsSource, str]] = []

    try:
        for source in sources:
            context.log(f"Fetching RSS from {source.name}...")
            try:
                response = fetch_feed(session, source.feed_url, timeout=timeout)
                if not 200 <= response.status_code < 300:
                    context.log(
                        f"Failed to fetch {source.name}: {response.status_code}",
                        level=logging.WARNING,
                    )
                    continue
                fetched.append((source, decode_feed(response)))
            except Exception as exc:
                context.log(f"Error processing {source.name}: {exc}", level=logging.ERROR)
    finally:
        if owns_session:
            session.close()

    logger.info("[FETCH] %s/%s sources fetched", len(fetched), len(sources))
    return fetched

"""
RSS feed parser.
Extracts items from raw feed text with patterns instead of an XML tree, so
feeds that are not well-formed XML still yield whatever items are usable.
"""

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from src.models import RawArticle
from src.scrapers.image_resolver import resolve_image_url

logger = logging.getLogger(__name__)

ITEM_RE = re.compile(r"<item[^>]*>(.*?)</item>", re.IGNORECASE | re.DOTALL)
TITLE_RE = re.compile(
    r"<title[^>]*>(?:<!\[CDATA\[)?(.*?)(?:\]\]>)?</title>", re.IGNORECASE | re.DOTALL
)
DESCRIPTION_RE = re.compile(
    r"<description[^>]*>(?:<!\[CDATA\[)?(.*?)(?:\]\]>)?</description>",
    re.IGNORECASE | re.DOTALL,
)
LINK_RE = re.compile(r"<link[^>]*>(.*?)</link>", re.IGNORECASE | re.DOTALL)
PUB_DATE_RE = re.compile(r"<pubDate[^>]*>(.*?)</pubDate>", re.IGNORECASE | re.DOTALL)
GUID_RE = re.compile(r"<guid[^>]*>(.*?)</guid>", re.IGNORECASE | re.DOTALL)

CDATA_MARKER_RE = re.compile(r"<!\[CDATA\[|\]\]>")
MARKUP_RE = re.compile(r"<[^>]+>")

# &amp; goes last so "&amp;lt;" decodes to "&lt;" rather than "<".
_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&amp;", "&"),
)


def decode_entities(text: str) -> str:
    """Decode the standard XML escapes used in feed titles and descriptions."""
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text


def clean_title(raw: str) -> str:
    return CDATA_MARKER_RE.sub("", decode_entities(raw)).strip()


def clean_description(raw: str) -> str:
    text = CDATA_MARKER_RE.sub("", decode_entities(raw))
    return MARKUP_RE.sub("", text).strip()


def parse_item(item_xml: str) -> RawArticle | None:
    """
    Parse a single <item> body.
    Returns None when title, link or pubDate is missing.
    """
    title_match = TITLE_RE.search(item_xml)
    link_match = LINK_RE.search(item_xml)
    pub_date_match = PUB_DATE_RE.search(item_xml)
    if not (title_match and link_match and pub_date_match):
        return None

    desc_match = DESCRIPTION_RE.search(item_xml)
    guid_match = GUID_RE.search(item_xml)

    raw_description = desc_match.group(1) if desc_match else None
    link = link_match.group(1).strip()

    return RawArticle(
        title=clean_title(title_match.group(1)),
        description=clean_description(raw_description) if raw_description is not None else "",
        link=link,
        published_at=pub_date_match.group(1).strip(),
        guid=guid_match.group(1).strip() if guid_match else link,
        image_url=resolve_image_url(item_xml, raw_description),
    )


def parse_feed(feed_text: str) -> list[RawArticle]:
    """
    Convert raw feed text into articles, in feed order.
    Never raises: malformed items are skipped without being reported.
    """
    if not feed_text:
        return []

    articles: list[RawArticle] = []
    for match in ITEM_RE.finditer(feed_text):
        article = parse_item(match.group(1))
        if article is not None:
            articles.append(article)

    logger.debug("[RSS] Parsed %s items", len(articles))
    return articles


def parse_date(value: str) -> datetime | None:
    """
    Parse a feed publish date (RFC 822 first, then ISO 8601).
    Naive results are taken as UTC. Returns None when neither format matches.
    """
    text = (value or "").strip()
    if not text:
        return None

    parsed: datetime | None = None
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

from __future__ import annotations

import pytest
import requests

from src.models import CollectedArticle, NewsSource, RawArticle

PUB_DATE = "Mon, 06 Jan 2025 10:00:00 GMT"


def rss_item(
    title: str | None = "Title",
    link: str | None = "https://example.com/a",
    pub_date: str | None = PUB_DATE,
    description: str | None = "Description",
    guid: str | None = None,
    extra: str = "",
) -> str:
    parts = ["<item>"]
    if title is not None:
        parts.append(f"<title>{title}</title>")
    if description is not None:
        parts.append(f"<description>{description}</description>")
    if link is not None:
        parts.append(f"<link>{link}</link>")
    if pub_date is not None:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    if guid is not None:
        parts.append(f"<guid>{guid}</guid>")
    parts.append(extra)
    parts.append("</item>")
    return "".join(parts)


def rss_feed(*items: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel><title>Feed</title>'
        + "".join(items)
        + "</channel></rss>"
    )


def enrichment_json(topic: str = "Housing Crisis", summary: str = "A short summary.") -> str:
    return (
        "{"
        f'"topic": "{topic}", "headline": "Neutral headline", "ai_summary": "{summary}", '
        '"bias_rating": "Center", "key_points": ["one", "two", "three"], '
        '"tags": ["housing", "economy"], "left_emphasis": "Left view.", '
        '"right_emphasis": "Right view.", "common_ground": "Shared view."'
        "}"
    )


class FakeStore:
    def __init__(self, sources=None, fail_topics=(), fail_articles=(), sources_error=None):
        self.sources = list(sources or [])
        self.fail_topics = set(fail_topics)
        self.fail_articles = set(fail_articles)
        self.sources_error = sources_error
        self.topics = []
        self.articles = []

    def select_active_sources(self):
        if self.sources_error is not None:
            raise self.sources_error
        return [s for s in self.sources if s.is_active]

    def insert_topic(self, record):
        if record.topic in self.fail_topics:
            raise RuntimeError(f"topic rejected: {record.topic}")
        self.topics.append(record)
        return {"id": f"topic-{len(self.topics)}"}

    def insert_article(self, record):
        if record.topic in self.fail_articles:
            raise RuntimeError(f"article rejected: {record.topic}")
        self.articles.append(record)
        return {"id": f"article-{len(self.articles)}"}


class FakeBackend:
    """Replies per call index; a reply may be a string or an exception to raise."""

    def __init__(self, replies=None, default=None):
        self.replies = dict(replies or {})
        self.default = default
        self.prompts = []

    def generate(self, prompt):
        index = len(self.prompts)
        self.prompts.append(prompt)
        reply = self.replies.get(index)
        if reply is None:
            reply = self.default if self.default is not None else enrichment_json(topic=f"Topic {index + 1}")
        if isinstance(reply, Exception):
            raise reply
        return reply


def feed_response(body, status_code=200, content_type="application/rss+xml; charset=utf-8") -> requests.Response:
    """A real requests.Response carrying `body` as bytes, encoded the way requests would receive it."""
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode("utf-8") if isinstance(body, str) else body
    if content_type:
        response.headers["Content-Type"] = content_type
    response.encoding = requests.utils.get_encoding_from_headers(response.headers)
    return response


class FakeSession:
    """Maps feed URL to feed text, a requests.Response, an HTTP status code, or an exception."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None):
        self.calls.append(url)
        reply = self.responses[url]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, requests.Response):
            return reply
        if isinstance(reply, int):
            return feed_response(b"", status_code=reply)
        return feed_response(reply)

    def close(self):
        self.closed = True


def make_source(name="Source A", bias="Center", url=None, active=True) -> NewsSource:
    return NewsSource(
        name=name,
        feed_url=url or f"https://{name.lower().replace(' ', '-')}.example/rss",
        bias_rating=bias,
        is_active=active,
    )


def make_collected(index: int, source: NewsSource | None = None, **overrides) -> CollectedArticle:
    fields = {
        "title": f"Article {index}",
        "description": f"Description {index}",
        "link": f"https://example.com/{index}",
        "published_at": PUB_DATE,
        "guid": f"guid-{index}",
        "image_url": f"https://img.example.com/{index}.jpg",
    }
    fields.update(overrides)
    return CollectedArticle(article=RawArticle(**fields), source=source or make_source())


@pytest.fixture
def valid_config(monkeypatch):
    import main

    monkeypatch.setattr(main, "validate_config", lambda mock=False: (True, []))

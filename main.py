#!/usr/bin/env python3
"""Run orchestrator: sources -> fetch -> parse -> enrich -> summary."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from datetime import date
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from config import LOG_FORMAT, validate_config
from src.analyzers.enricher import enrich_articles
from src.analyzers.llm_analyzer import GeminiBackend, MockBackend
from src.delivery.notion_controller import build_store
from src.models import CollectedArticle, NewsSource
from src.run_context import RunContext
from src.scrapers.feed_fetcher import fetch_all
from src.scrapers.rss_scraper import parse_feed

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """A required setting is missing; the run cannot start."""


class JsonFormatter(logging.Formatter):
    """One JSON object per log line, for machine-readable run logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "stage"):
            payload["stage"] = getattr(record, "stage")
        return json.dumps(payload, ensure_ascii=False)


@dataclass
class RunResult:
    """Terminal state of one run."""
    success: bool = False
    processed_count: int = 0
    total_articles_collected: int = 0
    logs: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    error: str = ""

    def to_response(self) -> dict:
        if not self.success:
            return {"error": self.error, "logs": self.logs}
        return {
            "success": True,
            "processedCount": self.processed_count,
            "totalArticlesCollected": self.total_articles_collected,
            "logs": self.logs,
            "errors": self.errors,
        }


def configure_logging(log_format: str) -> None:
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonFormatter(datefmt="%Y-%m-%dT%H:%M:%S"))
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch news feeds and enrich the top articles into topics"
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use a canned generation backend instead of Gemini (no API key needed)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=LOG_FORMAT if LOG_FORMAT in ("text", "json") else "text",
        help="Log format (text|json)",
    )
    parser.add_argument(
        "--output-dir",
        default="output",
        help="Directory for the run summary JSON (default: output)",
    )
    return parser.parse_args(argv)


def _normalize_url(url: str) -> str:
    """Normalize URL for de-duplication."""
    if not url:
        return ""
    parsed = urlparse(url.strip())
    netloc = parsed.netloc.lower()
    if netloc.endswith(":80"):
        netloc = netloc[:-3]
    if netloc.endswith(":443"):
        netloc = netloc[:-4]
    clean_query = urlencode(sorted(parse_qsl(parsed.query, keep_blank_values=True)))
    clean_path = parsed.path.rstrip("/") or "/"
    return urlunparse((parsed.scheme.lower(), netloc, clean_path, parsed.params, clean_query, ""))


def _dedupe_articles(articles: list[CollectedArticle]) -> list[CollectedArticle]:
    """Drop later copies of an article (same guid or same link), keeping order."""
    seen: set[str] = set()
    deduped: list[CollectedArticle] = []
    for article in articles:
        keys = {f"guid:{article.guid.strip()}"} if article.guid else set()
        link = _normalize_url(article.link)
        if link:
            keys.add(f"link:{link}")
        if keys & seen:
            continue
        seen |= keys
        deduped.append(article)
    return deduped


def collect_articles(
    fetched: list[tuple[NewsSource, str]], context: RunContext
) -> list[CollectedArticle]:
    """Parse every fetched feed and pool the items in source order."""
    pool: list[CollectedArticle] = []
    for source, feed_text in fetched:
        items = parse_feed(feed_text)
        context.log(f"Parsed {len(items)} articles from {source.name}")
        pool.extend(CollectedArticle(article=item, source=source) for item in items)
    return pool


def run_pipeline(store=None, backend=None, session=None, mock: bool = False) -> RunResult:
    """
    Execute one run.

    Steps:
    1. Validate config (fatal)
    2. Read active sources (fatal)
    3. Fetch + parse each source (per-source failures skipped)
    4. Enrich the first articles of the pool (per-article failures skipped)

    Only steps 1-2 can halt the run; once fetching starts the run completes.
    """
    context = RunContext()
    result = RunResult(logs=context.logs, errors=context.errors)

    try:
        valid, config_errors = validate_config(mock=mock)
        if not valid:
            raise ConfigError("; ".join(config_errors))

        if store is None:
            store = build_store()
        if backend is None:
            backend = MockBackend() if mock else GeminiBackend()

        context.log("Fetching active news sources...")
        sources = store.select_active_sources()
        context.log(f"Found {len(sources)} active sources")
    except Exception as exc:
        logger.error("[RUN] Run halted: %s", exc)
        result.error = str(exc)
        return result

    fetched = fetch_all(sources, context, session=session)
    pool = collect_articles(fetched, context)
    deduped = _dedupe_articles(pool)
    if len(deduped) != len(pool):
        context.log(f"Dropped {len(pool) - len(deduped)} duplicate articles")
    context.log(f"Total articles collected: {len(deduped)}")

    processed = enrich_articles(deduped, backend, store, context)

    result.success = True
    result.processed_count = len(processed)
    result.total_articles_collected = len(deduped)
    return result


def _emit_summary(result: RunResult, output_dir: str) -> str:
    os.makedirs(output_dir, exist_ok=True)
    today = date.today().strftime("%Y-%m-%d")
    summary_path = os.path.join(output_dir, f"run-summary-{today}.json")
    with open(summary_path, "w", encoding="utf-8") as handle:
        json.dump(asdict(result), handle, ensure_ascii=False, indent=2)
    logger.info("[SUMMARY] Wrote run summary: %s", summary_path)
    return summary_path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_format)

    result = run_pipeline(mock=args.mock)
    _emit_summary(result, args.output_dir)
    print(json.dumps(result.to_response(), ensure_ascii=False, indent=2))

    if result.success:
        logger.info(
            "Run complete | collected=%s processed=%s errors=%s",
            result.total_articles_collected,
            result.processed_count,
            len(result.errors),
        )
        return 0

    logger.error("Run halted | reason=%s", result.error)
    return 1


if __name__ == "__main__":
    sys.exit(main())

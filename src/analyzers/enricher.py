"""
Enrichment pipeline.
Sends the first few collected articles through the generation backend and
persists one topic plus one article record per successful reply.
"""

import logging
from dataclasses import dataclass

from config import MAX_TOPICS_PER_RUN
from src.analyzers.llm_analyzer import EnrichmentParseError, build_prompt, parse_enrichment
from src.models import ArticleRecord, CollectedArticle, EnrichmentResult, TopicRecord
from src.run_context import RunContext
from src.scrapers.rss_scraper import parse_date

logger = logging.getLogger(__name__)


@dataclass
class EnrichedTopic:
    """A topic that reached the store, with whatever the store returned."""
    record: TopicRecord
    stored: object
    article_stored: bool


def bias_counts(bias_rating: str) -> tuple[int, int, int]:
    """(left, centre, right) with a single 1 for the source's bias."""
    bias = (bias_rating or "").strip().lower()
    if bias == "left":
        return 1, 0, 0
    if bias in ("center", "centre"):
        return 0, 1, 0
    if bias == "right":
        return 0, 0, 1
    logger.warning("[ENRICH] Unknown bias rating %r, counting no side", bias_rating)
    return 0, 0, 0


def build_topic_record(
    article: CollectedArticle,
    result: EnrichmentResult,
    published_date: str,
    is_featured: bool,
) -> TopicRecord:
    left, centre, right = bias_counts(article.source.bias_rating)
    return TopicRecord(
        topic=result.topic,
        headline=result.headline,
        ai_summary=result.ai_summary,
        thumbnail_url=article.image_url,
        published_date=published_date,
        source_count_left=left,
        source_count_centre=centre,
        source_count_right=right,
        left_emphasis=[result.left_emphasis],
        right_emphasis=[result.right_emphasis],
        common_ground=[result.common_ground],
        key_points=list(result.key_points),
        tags=list(result.tags),
        is_featured=is_featured,
    )


def build_article_record(article: CollectedArticle, topic: str, published_date: str) -> ArticleRecord:
    return ArticleRecord(
        topic=topic,
        title=article.title,
        url=article.link,
        source=article.source.name,
        source_bias=article.source.bias_rating,
        published_date=published_date,
        thumbnail_url=article.image_url,
        summary=article.description,
    )


def enrich_article(
    article: CollectedArticle,
    backend,
    store,
    context: RunContext,
    is_featured: bool,
) -> EnrichedTopic | None:
    """
    Enrich and persist one article.
    Returns None when the article was skipped; the reason is already in the
    run log (and in the error list for anything but a clean skip).
    """
    published = parse_date(article.article.published_at)
    if published is None:
        context.fail(
            f"Invalid publish date for '{article.title}': {article.article.published_at}"
        )
        return None
    published_date = published.isoformat()

    text = backend.generate(build_prompt(article))

    try:
        result = parse_enrichment(text)
    except EnrichmentParseError as exc:
        context.fail(
            f"Failed to parse JSON: {exc.preview}",
            error=f"Failed to parse enrichment for '{article.title}': {exc.message}",
        )
        return None

    topic_record = build_topic_record(article, result, published_date, is_featured)
    try:
        stored = store.insert_topic(topic_record)
    except Exception as exc:
        context.fail(f"Error inserting topic: {exc}", error=str(exc))
        return None

    article_stored = True
    try:
        store.insert_article(build_article_record(article, result.topic, published_date))
    except Exception as exc:
        # The topic row stays; only the article row is missing.
        article_stored = False
        context.fail(f"Error inserting article for topic '{result.topic}': {exc}", error=str(exc))

    context.log(f"Successfully processed: {result.topic}")
    return EnrichedTopic(record=topic_record, stored=stored, article_stored=article_stored)


def enrich_articles(
    articles: list[CollectedArticle],
    backend,
    store,
    context: RunContext,
    limit: int = MAX_TOPICS_PER_RUN,
) -> list[EnrichedTopic]:
    """
    Enrich the first `limit` articles in collection order, sequentially.
    A failure on one article never stops the others.
    """
    processed: list[EnrichedTopic] = []

    for article in articles[:limit]:
        context.log(f"Processing: {article.title}")
        try:
            enriched = enrich_article(
                article, backend, store, context, is_featured=not processed
            )
        except Exception as exc:
            context.fail(f"Error: {exc}", error=f"{article.title}: {exc}")
            continue
        if enriched is not None:
            processed.append(enriched)

    logger.info("[ENRICH] Enriched %s/%s articles", len(processed), min(len(articles), limit))
    return processed

from conftest import FakeBackend, FakeStore, enrichment_json, make_collected, make_source
from src.analyzers.enricher import bias_counts, build_topic_record, enrich_articles
from src.analyzers.llm_analyzer import parse_enrichment
from src.run_context import RunContext


def _articles(count, source=None):
    return [make_collected(i, source=source) for i in range(1, count + 1)]


def test_only_first_five_are_sent_to_backend():
    backend = FakeBackend()
    store = FakeStore()

    processed = enrich_articles(_articles(12), backend, store, RunContext())

    assert len(backend.prompts) == 5
    assert len(processed) == 5
    assert [a.title for a in store.articles] == [f"Article {i}" for i in range(1, 6)]


def test_fenced_reply_is_stored_without_fences():
    backend = FakeBackend(replies={2: "```json\n" + enrichment_json(topic="Fenced", summary="Plain.") + "\n```"})
    store = FakeStore()

    processed = enrich_articles(_articles(5), backend, store, RunContext())

    assert len(processed) == 5
    fenced = [t for t in store.topics if t.topic == "Fenced"][0]
    assert fenced.ai_summary == "Plain."
    for value in (fenced.topic, fenced.headline, fenced.ai_summary, *fenced.key_points):
        assert "```" not in value


def test_non_json_reply_skips_article_and_records_error():
    backend = FakeBackend(replies={1: "I think this article is about housing."})
    store = FakeStore()
    context = RunContext()

    processed = enrich_articles(_articles(5), backend, store, context)

    assert len(processed) == 4
    assert "Article 2" not in [a.title for a in store.articles]
    assert any("Article 2" in error for error in context.errors)
    assert "Failed to parse JSON: I think this article is about housing." in context.logs


def test_backend_exception_is_recovered():
    backend = FakeBackend(replies={0: RuntimeError("quota exceeded")})
    store = FakeStore()
    context = RunContext()

    processed = enrich_articles(_articles(3), backend, store, context)

    assert len(processed) == 2
    assert len(backend.prompts) == 3
    assert context.errors == ["Article 1: quota exceeded"]


def test_first_persisted_topic_is_the_only_featured_one():
    backend = FakeBackend(replies={0: "not json"})
    store = FakeStore()

    enrich_articles(_articles(5), backend, store, RunContext())

    featured = [t for t in store.topics if t.is_featured]
    assert len(featured) == 1
    assert featured[0] is store.topics[0]
    assert store.articles[0].title == "Article 2"


def test_failed_topic_insert_skips_article_and_featured_moves_on():
    backend = FakeBackend()
    store = FakeStore(fail_topics={"Topic 1"})
    context = RunContext()

    processed = enrich_articles(_articles(3), backend, store, context)

    assert len(processed) == 2
    assert [a.topic for a in store.articles] == ["Topic 2", "Topic 3"]
    assert store.topics[0].topic == "Topic 2" and store.topics[0].is_featured
    assert context.errors == ["topic rejected: Topic 1"]
    assert "Error inserting topic: topic rejected: Topic 1" in context.logs


def test_failed_article_insert_keeps_topic():
    backend = FakeBackend()
    store = FakeStore(fail_articles={"Topic 1"})
    context = RunContext()

    processed = enrich_articles(_articles(2), backend, store, context)

    assert len(processed) == 2
    assert processed[0].article_stored is False
    assert [t.topic for t in store.topics] == ["Topic 1", "Topic 2"]
    assert [a.topic for a in store.articles] == ["Topic 2"]
    assert context.errors == ["article rejected: Topic 1"]


def test_every_article_references_a_stored_topic():
    backend = FakeBackend(replies={1: "garbage", 3: RuntimeError("boom")})
    store = FakeStore(fail_topics={"Topic 3"})

    enrich_articles(_articles(5), backend, store, RunContext())

    topics = {t.topic for t in store.topics}
    assert store.articles
    assert all(a.topic in topics for a in store.articles)


def test_invalid_publish_date_skips_before_generation():
    articles = [make_collected(1, published_at="not a date"), make_collected(2)]
    backend = FakeBackend()
    context = RunContext()

    processed = enrich_articles(articles, backend, FakeStore(), context)

    assert len(processed) == 1
    assert len(backend.prompts) == 1
    assert "Article 1" in context.errors[0]


def test_records_carry_source_bias_thumbnail_and_date():
    source = make_source("Right Wire", bias="Right")
    backend = FakeBackend()
    store = FakeStore()

    enrich_articles([make_collected(1, source=source)], backend, store, RunContext())

    topic = store.topics[0]
    assert (topic.source_count_left, topic.source_count_centre, topic.source_count_right) == (0, 0, 1)
    assert topic.thumbnail_url == "https://img.example.com/1.jpg"
    assert topic.published_date == "2025-01-06T10:00:00+00:00"
    assert topic.left_emphasis == ["Left view."]

    article = store.articles[0]
    assert article.source == "Right Wire"
    assert article.source_bias == "Right"
    assert article.url == "https://example.com/1"
    assert article.summary == "Description 1"


def test_bias_counts():
    assert bias_counts("Left") == (1, 0, 0)
    assert bias_counts("Center") == (0, 1, 0)
    assert bias_counts("centre") == (0, 1, 0)
    assert bias_counts("Right") == (0, 0, 1)
    assert bias_counts("Unknown") == (0, 0, 0)


def test_build_topic_record_featured_flag():
    result = parse_enrichment(enrichment_json())
    record = build_topic_record(make_collected(1), result, "2025-01-06T10:00:00+00:00", is_featured=True)
    assert record.is_featured is True
    assert record.key_points == ["one", "two", "three"]

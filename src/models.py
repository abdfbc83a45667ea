"""Record types shared across the ingestion and enrichment pipeline."""

from dataclasses import dataclass, field


@dataclass
class NewsSource:
    """A configured feed source, read from the data store."""
    name: str
    feed_url: str
    bias_rating: str          # "Left", "Center" or "Right"
    is_active: bool = True


@dataclass
class RawArticle:
    """One <item> extracted from a feed."""
    title: str
    description: str
    link: str
    published_at: str         # raw pubDate text, parsed later
    guid: str
    image_url: str | None = None


@dataclass
class CollectedArticle:
    """A RawArticle together with the source it came from."""
    article: RawArticle
    source: NewsSource

    @property
    def title(self) -> str:
        return self.article.title

    @property
    def description(self) -> str:
        return self.article.description

    @property
    def link(self) -> str:
        return self.article.link

    @property
    def guid(self) -> str:
        return self.article.guid

    @property
    def image_url(self) -> str | None:
        return self.article.image_url


@dataclass
class EnrichmentResult:
    """Structured output expected back from the generation backend."""
    topic: str
    headline: str
    ai_summary: str
    bias_rating: str
    key_points: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    left_emphasis: str = ""
    right_emphasis: str = ""
    common_ground: str = ""


@dataclass
class TopicRecord:
    topic: str
    headline: str
    ai_summary: str
    thumbnail_url: str | None
    published_date: str       # ISO-8601, UTC
    source_count_left: int
    source_count_centre: int
    source_count_right: int
    left_emphasis: list[str] = field(default_factory=list)
    right_emphasis: list[str] = field(default_factory=list)
    common_ground: list[str] = field(default_factory=list)
    key_points: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    is_featured: bool = False


@dataclass
class ArticleRecord:
    topic: str
    title: str
    url: str
    source: str
    source_bias: str
    published_date: str
    thumbnail_url: str | None
    summary: str

"""Notion-backed data store: news sources, topics and articles."""

import logging
import re

from notion_client import Client
from notion_client.errors import APIResponseError

from src.models import ArticleRecord, NewsSource, TopicRecord

logger = logging.getLogger(__name__)

TEXT_LIMIT = 2000

# Property names used in the three databases.
SOURCE_NAME = "Name"
SOURCE_FEED_URL = "RSS Feed URL"
SOURCE_BIAS = "Bias Rating"
SOURCE_ACTIVE = "Active"


class StoreError(Exception):
    """Structured data store error with category metadata."""

    def __init__(self, category: str, message: str):
        super().__init__(message)
        self.category = category
        self.message = message


class NotionStore:
    """
    Reads active sources and writes topic/article records.
    Each operation raises StoreError on failure; callers decide whether the
    failure is fatal for the run.
    """

    def __init__(
        self,
        client: Client,
        sources_database_id: str,
        topics_database_id: str,
        articles_database_id: str,
    ):
        self.client = client
        self.sources_database_id = sources_database_id
        self.topics_database_id = topics_database_id
        self.articles_database_id = articles_database_id
        self._schemas: dict[str, dict[str, dict]] = {}
        self._parents: dict[str, tuple[str, str]] = {}

    # --- Capability surface ---

    def select_active_sources(self) -> list[NewsSource]:
        body = {
            "page_size": 100,
            "filter": {"property": SOURCE_ACTIVE, "checkbox": {"equals": True}},
        }
        try:
            pages = self._query_all(self.sources_database_id, body)
        except Exception as e:
            raise StoreError(self.classify_error(e), str(e)) from e

        sources: list[NewsSource] = []
        for page in pages:
            source = self.page_to_source(page)
            if source is None:
                logger.warning("[NOTION] Skip source row without name or feed URL: %s", page.get("id"))
                continue
            if source.is_active:
                sources.append(source)
        return sources

    def insert_topic(self, record: TopicRecord) -> dict:
        return self._create(
            self.topics_database_id,
            self.build_topic_properties(record),
            children=self.build_topic_body(record),
        )

    def insert_article(self, record: ArticleRecord) -> dict:
        return self._create(self.articles_database_id, self.build_article_properties(record))

    # --- Errors ---

    @staticmethod
    def classify_error(error: Exception) -> str:
        if isinstance(error, APIResponseError):
            status = int(getattr(error, "status", 0) or 0)
            code = str(getattr(error, "code", "")).lower()
            message = str(error).lower()
            if status in (401, 403) or "unauthorized" in message or "forbidden" in message:
                return "AUTH"
            if status == 429 or "rate" in code or "rate" in message:
                return "RATE_LIMIT"
            if status == 400 and ("validation" in message or "property" in message):
                return "SCHEMA"
            return "API"
        return "UNKNOWN"

    # --- Notion plumbing ---

    def _create(self, database_id: str, properties: dict[str, dict], children: list[dict] | None = None) -> dict:
        try:
            schema = self.get_database_properties(database_id)
            parent_key, parent_id = self._parents.get(database_id, ("database_id", database_id))
            kwargs = {
                "parent": {parent_key: parent_id},
                "properties": self.filter_existing_properties(properties, schema),
            }
            if children:
                kwargs["children"] = children
            return self.client.pages.create(**kwargs)
        except Exception as e:
            raise StoreError(self.classify_error(e), str(e)) from e

    def get_database_properties(self, database_id: str) -> dict[str, dict]:
        """Retrieve and cache a database's schema properties."""
        if database_id not in self._schemas:
            parent_key, parent_id, schema = self._resolve_target(database_id)
            self._parents[database_id] = (parent_key, parent_id)
            self._schemas[database_id] = schema
        return self._schemas[database_id]

    def _resolve_target(self, database_id: str) -> tuple[str, str, dict[str, dict]]:
        # Newer workspaces expose the schema on a data source instead of the database.
        if hasattr(self.client, "data_sources"):
            try:
                ds = self.client.data_sources.retrieve(data_source_id=database_id)
                ds_props = ds.get("properties", {}) or {}
                if ds_props:
                    return "data_source_id", database_id, ds_props
            except Exception:
                logger.debug("[NOTION] %s is not a data source id, using database API", database_id)

        db = self.client.databases.retrieve(database_id=database_id)
        db_props = db.get("properties", {}) or {}
        if db_props:
            return "database_id", database_id, db_props

        for ds in db.get("data_sources", []) or []:
            ds_id = str(ds.get("id", "")).strip()
            if not ds_id:
                continue
            ds_detail = self.client.data_sources.retrieve(data_source_id=ds_id)
            ds_props = ds_detail.get("properties", {}) or {}
            if ds_props:
                return "data_source_id", ds_id, ds_props

        return "database_id", database_id, {}

    def query_entries(self, parent_key: str, parent_id: str, body: dict) -> dict:
        if parent_key == "data_source_id" and hasattr(self.client, "data_sources"):
            return self.client.data_sources.query(data_source_id=parent_id, **body)
        return self.client.request(
            path=f"databases/{parent_id}/query",
            method="POST",
            body=body,
        )

    def _query_all(self, database_id: str, body: dict) -> list[dict]:
        self.get_database_properties(database_id)
        parent_key, parent_id = self._parents.get(database_id, ("database_id", database_id))

        results: list[dict] = []
        query_body = body.copy()
        seen_cursors: set[str | None] = set()
        start_cursor = None
        has_more = True
        while has_more:
            if start_cursor in seen_cursors:
                logger.warning("[NOTION] Cursor loop detected, stopping pagination")
                break
            seen_cursors.add(start_cursor)

            if start_cursor:
                query_body["start_cursor"] = start_cursor
            else:
                query_body.pop("start_cursor", None)

            resp = self.query_entries(parent_key=parent_key, parent_id=parent_id, body=query_body)
            results.extend(resp.get("results", []))
            has_more = bool(resp.get("has_more", False))
            start_cursor = resp.get("next_cursor")
        return results

    @staticmethod
    def filter_existing_properties(
        all_properties: dict[str, dict], schema: dict[str, dict]
    ) -> dict[str, dict]:
        """Keep only properties that exist in the database schema."""
        if not schema:
            return all_properties

        known = {k: v for k, v in all_properties.items() if k in schema}
        missing = [k for k in all_properties if k not in schema]
        if missing:
            logger.warning("[NOTION] Missing properties in DB schema, skipped: %s", ", ".join(missing))
        return known

    # --- Page <-> record mapping ---

    @staticmethod
    def _plain_text(prop: dict) -> str:
        items = prop.get("title") or prop.get("rich_text") or []
        return "".join(item.get("plain_text", "") for item in items if isinstance(item, dict)).strip()

    @classmethod
    def page_to_source(cls, page: dict) -> NewsSource | None:
        props = page.get("properties", {})
        name = cls._plain_text(props.get(SOURCE_NAME, {}))
        feed_prop = props.get(SOURCE_FEED_URL, {})
        feed_url = (feed_prop.get("url") or cls._plain_text(feed_prop) or "").strip()
        if not name or not feed_url:
            return None

        bias_prop = props.get(SOURCE_BIAS, {})
        bias = (bias_prop.get("select") or {}).get("name") or cls._plain_text(bias_prop)
        return NewsSource(
            name=name,
            feed_url=feed_url,
            bias_rating=bias,
            is_active=bool(props.get(SOURCE_ACTIVE, {}).get("checkbox", True)),
        )

    @staticmethod
    def _text(value: str | None) -> dict:
        return {"rich_text": [{"text": {"content": (value or "")[:TEXT_LIMIT]}}]}

    @staticmethod
    def _title(value: str | None) -> dict:
        return {"title": [{"text": {"content": (value or "Untitled")[:TEXT_LIMIT]}}]}

    @staticmethod
    def parse_multi_select_tags(values: list[str] | None) -> list[dict]:
        """Notion option names may not contain commas and are capped at 100 chars."""
        tags = []
        for value in values or []:
            tag = re.sub(r"\s*,\s*", " ", str(value)).strip()
            if tag and len(tag) < 100:
                tags.append({"name": tag})
        return tags[:10]

    def build_topic_properties(self, record: TopicRecord) -> dict[str, dict]:
        properties: dict[str, dict] = {
            "Topic": self._title(record.topic),
            "Headline": self._text(record.headline),
            "AI Summary": self._text(record.ai_summary),
            "Published Date": {"date": {"start": record.published_date}},
            "Source Count Left": {"number": record.source_count_left},
            "Source Count Centre": {"number": record.source_count_centre},
            "Source Count Right": {"number": record.source_count_right},
            "Left Emphasis": self._text("\n".join(record.left_emphasis)),
            "Right Emphasis": self._text("\n".join(record.right_emphasis)),
            "Common Ground": self._text("\n".join(record.common_ground)),
            "Key Points": self._text("\n".join(record.key_points)),
            "Tags": {"multi_select": self.parse_multi_select_tags(record.tags)},
            "Featured": {"checkbox": record.is_featured},
        }
        if record.thumbnail_url:
            properties["Thumbnail URL"] = {"url": record.thumbnail_url}
        return properties

    def build_article_properties(self, record: ArticleRecord) -> dict[str, dict]:
        properties: dict[str, dict] = {
            "Title": self._title(record.title),
            "Topic": self._text(record.topic),
            "URL": {"url": record.url},
            "Source": self._text(record.source),
            "Published Date": {"date": {"start": record.published_date}},
            "Summary": self._text(record.summary),
        }
        if record.source_bias:
            properties["Source Bias"] = {"select": {"name": record.source_bias}}
        if record.thumbnail_url:
            properties["Thumbnail URL"] = {"url": record.thumbnail_url}
        return properties

    def build_topic_body(self, record: TopicRecord) -> list[dict]:
        """Page content for a topic: summary, key points and perspectives."""
        blocks = [self._heading2(record.headline or record.topic)]
        if record.ai_summary:
            blocks.append(self._paragraph(record.ai_summary))

        if record.key_points:
            blocks.append(self._heading3("Key Points"))
            blocks.extend(self._bullet(point) for point in record.key_points)

        for label, lines in (
            ("Left Emphasis", record.left_emphasis),
            ("Right Emphasis", record.right_emphasis),
            ("Common Ground", record.common_ground),
        ):
            text = " ".join(line for line in lines if line)
            if text:
                blocks.append(self._heading3(label))
                blocks.append(self._paragraph(text))
        return blocks

    @staticmethod
    def _heading2(text: str) -> dict:
        return {
            "object": "block",
            "type": "heading_2",
            "heading_2": {"rich_text": [{"type": "text", "text": {"content": text[:TEXT_LIMIT]}}]},
        }

    @staticmethod
    def _heading3(text: str) -> dict:
        return {
            "object": "block",
            "type": "heading_3",
            "heading_3": {"rich_text": [{"type": "text", "text": {"content": text[:TEXT_LIMIT]}}]},
        }

    @staticmethod
    def _paragraph(text: str) -> dict:
        return {
            "object": "block",
            "type": "paragraph",
            "paragraph": {"rich_text": [{"type": "text", "text": {"content": text[:TEXT_LIMIT]}}]},
        }

    @staticmethod
    def _bullet(text: str) -> dict:
        return {
            "object": "block",
            "type": "bulleted_list_item",
            "bulleted_list_item": {
                "rich_text": [{"type": "text", "text": {"content": text[:TEXT_LIMIT]}}]
            },
        }

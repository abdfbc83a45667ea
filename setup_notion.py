"""Create or update the property schema of the three Notion databases."""

import json
import logging
import sys

from notion_client import Client

import config
from src.delivery.notion_service import SOURCE_ACTIVE, SOURCE_BIAS, SOURCE_FEED_URL, SOURCE_NAME

logger = logging.getLogger("setup_notion")

BIAS_OPTIONS = [
    {"name": "Left", "color": "blue"},
    {"name": "Center", "color": "gray"},
    {"name": "Right", "color": "red"},
]

SOURCES_SCHEMA = {
    SOURCE_NAME: {"title": {}},
    SOURCE_FEED_URL: {"url": {}},
    SOURCE_BIAS: {"select": {"options": BIAS_OPTIONS}},
    SOURCE_ACTIVE: {"checkbox": {}},
}

TOPICS_SCHEMA = {
    "Topic": {"title": {}},
    "Headline": {"rich_text": {}},
    "AI Summary": {"rich_text": {}},
    "Thumbnail URL": {"url": {}},
    "Published Date": {"date": {}},
    "Source Count Left": {"number": {"format": "number"}},
    "Source Count Centre": {"number": {"format": "number"}},
    "Source Count Right": {"number": {"format": "number"}},
    "Left Emphasis": {"rich_text": {}},
    "Right Emphasis": {"rich_text": {}},
    "Common Ground": {"rich_text": {}},
    "Key Points": {"rich_text": {}},
    "Tags": {"multi_select": {}},
    "Featured": {"checkbox": {}},
}

ARTICLES_SCHEMA = {
    "Title": {"title": {}},
    "Topic": {"rich_text": {}},
    "URL": {"url": {}},
    "Source": {"rich_text": {}},
    "Source Bias": {"select": {"options": BIAS_OPTIONS}},
    "Published Date": {"date": {}},
    "Thumbnail URL": {"url": {}},
    "Summary": {"rich_text": {}},
}


def setup_databases(client: Client) -> int:
    """Returns the number of databases that failed to update."""
    failures = 0
    for label, database_id, properties in (
        ("sources", config.NOTION_SOURCES_DATABASE_ID, SOURCES_SCHEMA),
        ("topics", config.NOTION_TOPICS_DATABASE_ID, TOPICS_SCHEMA),
        ("articles", config.NOTION_ARTICLES_DATABASE_ID, ARTICLES_SCHEMA),
    ):
        logger.info(f"Updating {label} schema for database {database_id}...")
        try:
            resp = client.databases.update(database_id=database_id, properties=properties)
            logger.info(f"✅ {label} schema updated: {json.dumps(list(resp.get('properties', {}).keys()))}")
        except Exception as e:
            logger.error(f"❌ Failed to update {label} schema: {e}")
            failures += 1
    return failures


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    ok, errors = config.validate_config(mock=True)
    if not ok:
        for error in errors:
            logger.error(error)
        return 1
    return 1 if setup_databases(Client(auth=config.NOTION_API_KEY)) else 0


if __name__ == "__main__":
    sys.exit(main())

"""Controller layer: wires the Notion data store from configuration."""

import logging

from notion_client import Client

import config
from src.delivery.notion_service import NotionStore

logger = logging.getLogger(__name__)


def build_store() -> NotionStore:
    """
    Build the data store from environment configuration.
    Callers are expected to have run config.validate_config() first.
    """
    client = Client(auth=config.NOTION_API_KEY)
    logger.info("[NOTION] Using sources=%s topics=%s articles=%s",
                config.NOTION_SOURCES_DATABASE_ID,
                config.NOTION_TOPICS_DATABASE_ID,
                config.NOTION_ARTICLES_DATABASE_ID)
    return NotionStore(
        client=client,
        sources_database_id=config.NOTION_SOURCES_DATABASE_ID,
        topics_database_id=config.NOTION_TOPICS_DATABASE_ID,
        articles_database_id=config.NOTION_ARTICLES_DATABASE_ID,
    )

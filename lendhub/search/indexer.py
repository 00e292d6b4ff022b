"""
Search indexer - pushes item documents to Elasticsearch through the Celery queue.
"""

import logging
from typing import Any, Protocol

from lendhub.db.models.item import Item
from lendhub.queue.tasks import index_item_task

logger = logging.getLogger(__name__)


class SearchIndexer(Protocol):
    def index(self, item: Item) -> None: ...


def item_to_doc(item: Item) -> dict[str, Any]:
    """Convert ORM model to document for Elasticsearch."""
    doc: dict[str, Any] = {
        "id": item.id,
        "name": item.name,
        "description": item.description or "",
        "categories": item.categories,
        "status": item.status.value,
        "owner_id": item.owner_id,
        "holder_id": item.holder_id,
        "created_at": item.created_at.isoformat() if item.created_at else None,
    }
    if item.location is not None:
        doc["location"] = {"lat": item.latitude, "lon": item.longitude}
    return doc


class CelerySearchIndexer:
    """Event-driven: send to queue instead of blocking on Elasticsearch."""

    def index(self, item: Item) -> None:
        try:
            index_item_task.delay(item_to_doc(item))
        except Exception as exc:
            logger.warning("index of item %s not queued: %s", item.id, exc)

"""
Elasticsearch client - keyword and geo search over lending items.
Challenge: Index management, async operations, graceful degradation when ES is down.
Sync helpers used by Celery workers (no event loop in fork).
"""

import logging
from typing import Any
from urllib.parse import urlparse

from elasticsearch import AsyncElasticsearch, Elasticsearch

from lendhub.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

ITEMS_INDEX = "lending_items"

_es_client: AsyncElasticsearch | None = None


def _es_client_options() -> dict:
    """Build Elasticsearch client options from settings (supports HTTPS + basic auth in URL)."""
    url = settings.elasticsearch_url
    basic_auth = None
    parsed = urlparse(url)
    if parsed.username and parsed.password:
        basic_auth = (parsed.username, parsed.password)
        # The client takes credentials separately
        netloc = parsed.hostname or ""
        if parsed.port:
            netloc += f":{parsed.port}"
        url = f"{parsed.scheme}://{netloc}"
    opts = {
        "hosts": [url],
        "verify_certs": settings.elasticsearch_verify_certs,
        "request_timeout": 30,
    }
    if basic_auth:
        opts["basic_auth"] = basic_auth
    return opts


async def get_elasticsearch() -> AsyncElasticsearch:
    """Get Elasticsearch client. Dependency injection for tests."""
    global _es_client
    if _es_client is None:
        _es_client = AsyncElasticsearch(**_es_client_options())
    return _es_client


async def close_elasticsearch() -> None:
    global _es_client
    if _es_client is not None:
        await _es_client.close()
        _es_client = None


def items_index_mappings() -> dict:
    """Mapping for the items index (shared by async and sync create)."""
    return {
        "properties": {
            "id": {"type": "integer"},
            "name": {"type": "text", "analyzer": "standard"},
            "description": {"type": "text", "analyzer": "standard"},
            "categories": {"type": "keyword"},
            "status": {"type": "keyword"},
            "owner_id": {"type": "integer"},
            "holder_id": {"type": "integer"},
            "location": {"type": "geo_point"},
            "created_at": {"type": "date"},
        }
    }


def _payload(doc: dict[str, Any]) -> dict[str, Any]:
    # ES rejects null for date fields
    payload = {k: v for k, v in doc.items() if v is not None}
    payload.setdefault("created_at", "1970-01-01T00:00:00Z")
    return payload


async def ensure_items_index() -> None:
    """Create items index with mapping if not exists. Single-node: 0 replicas to avoid unassigned shards."""
    es = await get_elasticsearch()
    if not await es.indices.exists(index=ITEMS_INDEX):
        await es.indices.create(
            index=ITEMS_INDEX,
            settings={"index": {"number_of_replicas": 0}},
            mappings=items_index_mappings(),
        )


def build_search_query(
    query: str,
    categories: list[str] | None = None,
    status: str | None = None,
    center: tuple[float, float] | None = None,
    radius_km: float | None = None,
) -> dict[str, Any]:
    """Full-text on name/description; categories, status and distance as filters."""
    filters: list[dict[str, Any]] = []
    if categories:
        filters.append({"terms": {"categories": categories}})
    if status:
        filters.append({"term": {"status": status}})
    if center is not None and radius_km:
        filters.append(
            {
                "geo_distance": {
                    "distance": f"{radius_km}km",
                    "location": {"lat": center[0], "lon": center[1]},
                }
            }
        )
    return {
        "bool": {
            "must": [
                {
                    "multi_match": {
                        "query": query,
                        "fields": ["name^2", "description"],
                        "fuzziness": "AUTO",
                    }
                }
            ],
            "filter": filters,
        }
    }


async def search_items(
    query: str,
    skip: int = 0,
    limit: int = 20,
    categories: list[str] | None = None,
    status: str | None = None,
    center: tuple[float, float] | None = None,
    radius_km: float | None = None,
) -> list[dict[str, Any]]:
    """Keyword search. Returns the stored documents; empty list when ES is unavailable."""
    try:
        es = await get_elasticsearch()
        response = await es.search(
            index=ITEMS_INDEX,
            query=build_search_query(query, categories, status, center, radius_km),
            from_=skip,
            size=limit,
        )
        body = getattr(response, "body", response)
        hits = body["hits"]["hits"]
        if not hits:
            logger.info("search_items: query=%r returned 0 hits", query)
        return [hit["_source"] for hit in hits]
    except Exception as e:
        logger.warning("search_items failed: query=%r error=%s", query, e)
        return []


# --- Sync API for Celery (workers run in sync context; async + new_event_loop fails after fork) ---


def _sync_es_client() -> Elasticsearch:
    """New sync client per call (safe in forked Celery worker)."""
    return Elasticsearch(**_es_client_options())


def ensure_items_index_sync() -> None:
    """Create items index if not exists. Call from Celery task or scripts."""
    try:
        es = _sync_es_client()
        if not es.indices.exists(index=ITEMS_INDEX):
            es.indices.create(
                index=ITEMS_INDEX,
                settings={"index": {"number_of_replicas": 0}},
                mappings=items_index_mappings(),
            )
    except Exception as e:
        logger.warning("ensure_items_index_sync failed: %s", e)


def index_item_sync(doc: dict[str, Any]) -> bool:
    """Index a single item. ES 8 requires id to be str."""
    try:
        es = _sync_es_client()
        es.index(index=ITEMS_INDEX, id=str(doc["id"]), document=_payload(doc))
        return True
    except Exception as e:
        logger.warning("index_item_sync failed for doc id=%s: %s", doc.get("id"), e)
        return False

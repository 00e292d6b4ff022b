#!/usr/bin/env python3
"""
Reindex all items from the database into Elasticsearch via Celery.
Reads items directly (pages of the recent-items query); the Celery worker does the indexing.

If you get 503 / no_shard_available from Elasticsearch, delete the broken index and reindex:
  python scripts/reindex_elasticsearch.py --reset-index

  python scripts/reindex_elasticsearch.py
  python scripts/reindex_elasticsearch.py --page-size 500
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lendhub.db.repositories.item_repository import ItemRepository
from lendhub.db.session import async_session_maker, engine
from lendhub.queue.tasks import index_item_task
from lendhub.search.elasticsearch_client import ITEMS_INDEX, _sync_es_client
from lendhub.search.indexer import item_to_doc


def delete_items_index():
    """Delete the items index so Celery will recreate it with number_of_replicas=0 (single-node safe)."""
    es = _sync_es_client()
    if es.indices.exists(index=ITEMS_INDEX):
        es.indices.delete(index=ITEMS_INDEX)
        print(f"Deleted index '{ITEMS_INDEX}'. Celery will recreate it when processing the first task.")
    else:
        print(f"Index '{ITEMS_INDEX}' does not exist (already deleted or never created).")


async def enqueue_all(page_size: int) -> int:
    enqueued = 0
    async with async_session_maker() as session:
        repo = ItemRepository(session)
        skip = 0
        while True:
            page = await repo.recent(skip=skip, limit=page_size)
            for item in page:
                index_item_task.delay(item_to_doc(item))
            enqueued += len(page)
            if len(page) < page_size:
                break
            skip += page_size
    await engine.dispose()
    return enqueued


def main():
    ap = argparse.ArgumentParser(description="Enqueue all items for Elasticsearch reindex")
    ap.add_argument("--page-size", type=int, default=200, help="Items read per query")
    ap.add_argument("--reset-index", action="store_true", help="Delete the items index first, then enqueue")
    args = ap.parse_args()

    if args.reset_index:
        delete_items_index()
        print()

    count = asyncio.run(enqueue_all(args.page_size))
    if not count:
        print("No items in DB. Run seed_data.py first.")
        return
    print(f"Enqueued {count} items for Elasticsearch reindex. Ensure Celery worker is running.")
    print(f"Check with: curl -s 'http://localhost:9200/{ITEMS_INDEX}/_count?pretty'")


if __name__ == "__main__":
    main()

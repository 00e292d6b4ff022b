#!/usr/bin/env python3
"""
Create the Elasticsearch 'lending_items' index with raw HTTP (no Python ES client).
Use this when the index keeps returning 503 no_shard_available even after --reset-index:
  python scripts/create_es_items_index.py

Then reindex WITHOUT --reset-index so Celery only indexes into the new index:
  python scripts/reindex_elasticsearch.py

Reads ELASTICSEARCH_URL from .env (default http://localhost:9200).
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

from lendhub.config import get_settings
from lendhub.search.elasticsearch_client import ITEMS_INDEX, items_index_mappings


def main():
    settings = get_settings()
    base = settings.elasticsearch_url.rstrip("/")
    url = f"{base}/{ITEMS_INDEX}"
    body = {"settings": {"index": {"number_of_replicas": 0}}, "mappings": items_index_mappings()}

    with httpx.Client(timeout=30.0, verify=settings.elasticsearch_verify_certs) as client:
        r = client.head(url)
        if r.status_code == 200:
            print(f"Index '{ITEMS_INDEX}' already exists. Delete it first if you want to recreate:")
            print(f"  curl -X DELETE '{base}/{ITEMS_INDEX}'")
            return
        r = client.put(url, json=body)
        if r.status_code not in (200, 201):
            print(f"Failed to create index: {r.status_code}")
            print(r.text[:500])
            sys.exit(1)
    print(f"Created index '{ITEMS_INDEX}' (location as geo_point, categories as keyword).")
    print("Run: python scripts/reindex_elasticsearch.py   (no --reset-index)")


if __name__ == "__main__":
    main()

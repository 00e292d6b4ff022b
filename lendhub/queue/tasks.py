"""
Celery tasks - event-driven processing for the lending core.
Challenge: Offload mail delivery and search indexing from the request path.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from lendhub.config import get_settings
from lendhub.db.models.mail import MailMessage
from lendhub.queue.celery_app import celery_app
from lendhub.search.elasticsearch_client import ensure_items_index_sync, index_item_sync

logger = logging.getLogger(__name__)
settings = get_settings()


def _run_async(coro):
    """Run async function from sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _store_mail(to: list[str], cc: list[str], subject: str, body: str) -> int:
    # Fresh engine per call: pooled asyncpg connections are bound to the loop that made them
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    try:
        async with engine.begin() as conn:
            result = await conn.execute(
                MailMessage.__table__.insert().values(to=to, cc=cc, subject=subject, body=body)
            )
            return result.inserted_primary_key[0]
    finally:
        await engine.dispose()


@celery_app.task(bind=True, max_retries=3)
def deliver_notification_task(self, to: list[str], cc: list[str], subject: str, body: str):
    """
    Write a notification to the mail outbox; the mail relay picks it up from there.
    Fired after transaction create/approve/cancel/transfer/receive.
    """
    try:
        message_id = _run_async(_store_mail(to, cc, subject, body))
        logger.info("notification %r queued for %s (outbox id %s)", subject, to, message_id)
        return message_id
    except Exception as exc:
        logger.warning("notification %r failed, retrying: %s", subject, exc)
        raise self.retry(exc=exc, countdown=5)


@celery_app.task(bind=True, max_retries=3)
def index_item_task(self, item_doc: dict):
    """
    Index item in Elasticsearch asynchronously.
    Fired after item create/update (event-driven: API publishes, worker consumes).
    Sync client: a new event loop per task does not survive the worker fork.
    """
    ensure_items_index_sync()
    if not index_item_sync(item_doc):
        raise self.retry(exc=RuntimeError(f"index failed for item {item_doc.get('id')}"), countdown=5)
    return item_doc.get("id")

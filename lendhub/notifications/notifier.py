"""
Notifier - fire-and-forget email notifications for lending events.
Challenge: A slow or broken mail path must never fail a state transition.
Design: Enqueue to Celery; failures are logged, never raised.
"""

import logging
from typing import Protocol

from lendhub.queue.tasks import deliver_notification_task

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, to: list[str], cc: list[str], subject: str, body: str) -> None: ...


def unique_recipients(addresses: list[str | None]) -> list[str]:
    """Drop empty and duplicate addresses, keep first-seen order."""
    seen: list[str] = []
    for address in addresses:
        if address and address not in seen:
            seen.append(address)
    return seen


class CeleryNotifier:
    """Publishes ``deliver_notification_task``; the worker writes to the mail outbox."""

    def send(self, to: list[str], cc: list[str], subject: str, body: str) -> None:
        to = unique_recipients(to)
        cc = [address for address in unique_recipients(cc) if address not in to]
        if not to:
            logger.debug("notification %r skipped: no recipients", subject)
            return
        try:
            deliver_notification_task.delay(to, cc, subject, body)
        except Exception as exc:
            logger.warning("notification %r to %s not queued: %s", subject, to, exc)

"""
Batched writes - groups statements into bounded atomic chunks.
Challenge: Stores cap how many documents one atomic commit may touch.
Design: Each chunk runs inside a SAVEPOINT; a failing chunk rolls back alone and
commit() reports how far it got instead of raising. The chunk size is a store limit,
not part of the ledger contract.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

logger = logging.getLogger(__name__)

BatchOp = Callable[[AsyncSession], Awaitable[Any]]

DEFAULT_MAX_BATCH_SIZE = 20


@dataclass
class BatchResult:
    committed: int = 0
    failed: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchWriter:
    """Collects write operations and applies them in chunks of at most ``max_batch_size``."""

    def __init__(self, session: AsyncSession, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE, label: str = "batch"):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")
        self.session = session
        self.max_batch_size = max_batch_size
        self.label = label
        self._ops: list[BatchOp] = []

    def __len__(self) -> int:
        return len(self._ops)

    def add(self, op: BatchOp) -> None:
        """Queue a coroutine function taking the session (for conditional multi-statement writes)."""
        self._ops.append(op)

    def add_statement(self, statement: Executable) -> None:
        """Queue a single Core statement."""

        async def _run(session: AsyncSession) -> None:
            await session.execute(statement)

        self._ops.append(_run)

    async def commit(self) -> BatchResult:
        """Apply queued ops chunk by chunk. Stops at the first failing chunk."""
        ops, self._ops = self._ops, []
        result = BatchResult()
        for start in range(0, len(ops), self.max_batch_size):
            chunk = ops[start : start + self.max_batch_size]
            try:
                async with self.session.begin_nested():
                    for op in chunk:
                        await op(self.session)
            except SQLAlchemyError as exc:
                result.failed = len(ops) - result.committed
                result.error = exc
                logger.error(
                    "%s: chunk at op %d failed after %d/%d ops committed: %s",
                    self.label,
                    start,
                    result.committed,
                    len(ops),
                    exc,
                )
                return result
            result.committed += len(chunk)
        if ops:
            logger.debug("%s: committed %d ops", self.label, result.committed)
        return result

"""
BatchWriter tests - bounded chunks, partial failure reporting.
"""

import pytest
from sqlalchemy import text

from lendhub.db.batch import BatchWriter
from lendhub.db.repositories.category_repository import CategoryRepository


@pytest.mark.asyncio
async def test_commit_applies_all_chunks(session):
    repo = CategoryRepository(session)
    batch = BatchWriter(session, max_batch_size=2, label="test")
    for category in ["a", "b", "c", "d", "e"]:
        batch.add(repo.increment_op("global", category, 1))
    assert len(batch) == 5

    result = await batch.commit()

    assert result.ok
    assert result.committed == 5
    assert len(batch) == 0
    assert await repo.counts("global") == {"a": 1, "b": 1, "c": 1, "d": 1, "e": 1}


@pytest.mark.asyncio
async def test_failed_chunk_rolls_back_alone_and_stops(session):
    repo = CategoryRepository(session)
    batch = BatchWriter(session, max_batch_size=2, label="test")
    batch.add(repo.increment_op("global", "a", 1))
    batch.add(repo.increment_op("global", "b", 1))
    # Violates count > 0
    batch.add_statement(text("INSERT INTO category_counters (scope, category, count) VALUES ('global', 'x', 0)"))
    batch.add(repo.increment_op("global", "c", 1))
    batch.add(repo.increment_op("global", "d", 1))

    result = await batch.commit()

    assert not result.ok
    assert result.committed == 2
    assert result.failed == 3
    assert await repo.counts("global") == {"a": 1, "b": 1}


@pytest.mark.asyncio
async def test_empty_commit_is_ok(session):
    result = await BatchWriter(session).commit()
    assert result.ok
    assert result.committed == 0


@pytest.mark.asyncio
async def test_batch_size_must_be_positive(session):
    with pytest.raises(ValueError):
        BatchWriter(session, max_batch_size=0)

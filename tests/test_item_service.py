"""
Item service tests - ledger accounting on create/update, location propagation, radius queries.
"""

import random

import pytest

from lendhub.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from lendhub.db.models import ItemStatus
from lendhub.geo import geohash
from lendhub.schemas.item import ItemCreate, ItemUpdate
from lendhub.services.category_ledger import GLOBAL_SCOPE, user_scope

AMSTERDAM = (52.3676, 4.9041)


@pytest.mark.asyncio
async def test_create_places_item_at_owner_location(services, make_user, indexer):
    owner = await make_user("alice", location=AMSTERDAM)

    item = await services.items.create(owner, ItemCreate(name="Drill", categories=[" Tools ", "Tools", "DIY"]))

    assert item.owner_id == owner.id
    assert item.holder_id is None
    assert item.categories == ["Tools", "DIY"]
    assert item.location == AMSTERDAM
    assert item.geohash == geohash.encode(*AMSTERDAM)
    assert indexer.indexed == [item.id]


@pytest.mark.asyncio
async def test_create_backfills_uninitialized_owner_once(services, make_user, make_legacy_item):
    owner = await make_user()
    await make_legacy_item(owner, "Old book", ["Books"])

    await services.items.create(owner, ItemCreate(name="New book", categories=["Books", "Maps"]))

    assert await services.ledger.counts(user_scope(owner.id)) == {"Books": 2, "Maps": 1}
    assert await services.ledger.counts(GLOBAL_SCOPE) == {"Books": 2, "Maps": 1}


@pytest.mark.asyncio
async def test_create_without_categories_leaves_ledger_alone(services, make_user):
    owner = await make_user()
    await services.items.create(owner, ItemCreate(name="Mystery box"))
    assert await services.ledger.counts(GLOBAL_SCOPE) == {}


@pytest.mark.asyncio
async def test_empty_category_label_rejected(services, make_user):
    owner = await make_user()
    with pytest.raises(ValidationError):
        await services.items.create(owner, ItemCreate(name="Thing", categories=["Books", "  "]))


@pytest.mark.asyncio
async def test_update_categories_moves_counters(services, make_user):
    owner = await make_user()
    other = await make_user()
    await services.items.create(other, ItemCreate(name="Atlas", categories=["A", "C"]))
    item = await services.items.create(owner, ItemCreate(name="Box", categories=["A", "B"]))
    before = await services.ledger.counts(GLOBAL_SCOPE)

    updated = await services.items.update(item.id, owner, ItemUpdate(categories=["B", "C"]))

    assert updated.categories == ["B", "C"]
    assert await services.ledger.counts(user_scope(owner.id)) == {"B": 1, "C": 1}
    after = await services.ledger.counts(GLOBAL_SCOPE)
    assert after["A"] == before["A"] - 1
    assert after["C"] == before["C"] + 1
    assert after["B"] == before["B"]


@pytest.mark.asyncio
async def test_update_other_fields_keeps_counters(services, make_user):
    owner = await make_user()
    item = await services.items.create(owner, ItemCreate(name="Box", categories=["A"]))

    updated = await services.items.update(
        item.id, owner, ItemUpdate(name="Big box", status=ItemStatus.GIFT, images=["a.jpg"])
    )

    assert (updated.name, updated.status, updated.images) == ("Big box", ItemStatus.GIFT, ["a.jpg"])
    assert await services.ledger.counts(user_scope(owner.id)) == {"A": 1}


@pytest.mark.asyncio
async def test_update_by_non_owner_rejected(services, make_user):
    owner = await make_user()
    stranger = await make_user()
    item = await services.items.create(owner, ItemCreate(name="Box", categories=["A"]))

    with pytest.raises(UnauthorizedError):
        await services.items.update(item.id, stranger, ItemUpdate(name="Mine now"))


@pytest.mark.asyncio
async def test_get_missing_item(services):
    with pytest.raises(NotFoundError):
        await services.items.get_by_id(404)


@pytest.mark.asyncio
async def test_propagate_location_moves_items_travelling_with_user(services, make_user, make_legacy_item, session):
    owner = await make_user(location=(52.0, 4.0))
    borrower = await make_user(location=(51.0, 3.0))
    at_home = await make_legacy_item(owner, "Held by owner", ["A"])
    lent_out = await make_legacy_item(owner, "Held by borrower", ["A"])
    await services.items.update_holder(lent_out, borrower)
    borrowers_own = await make_legacy_item(borrower, "Borrower's own", ["B"])

    moved = await services.items.propagate_location(owner.id, (53.0, 5.0))
    assert moved == 1
    moved = await services.items.propagate_location(borrower.id, (50.0, 2.0))
    assert moved == 2

    for item in (at_home, lent_out, borrowers_own):
        await session.refresh(item)
    assert at_home.location == (53.0, 5.0)
    assert at_home.geohash == geohash.encode(53.0, 5.0)
    assert lent_out.location == (50.0, 2.0)
    assert borrowers_own.location == (50.0, 2.0)


@pytest.mark.asyncio
async def test_update_holder_back_to_owner_clears_holder(services, make_user, make_legacy_item):
    owner = await make_user(location=(52.0, 4.0))
    borrower = await make_user()
    item = await make_legacy_item(owner, "Tent", ["Outdoor"])

    await services.items.update_holder(item, borrower)
    assert item.holder_id == borrower.id
    assert item.location is None
    assert item.geohash is None

    await services.items.update_holder(item, owner)
    assert item.holder_id is None
    assert item.location == (52.0, 4.0)


@pytest.mark.asyncio
async def test_items_by_radius_matches_brute_force(services, make_user, make_legacy_item):
    rng = random.Random(99)
    owner = await make_user()
    items = []
    for i in range(80):
        location = (AMSTERDAM[0] + rng.uniform(-0.15, 0.15), AMSTERDAM[1] + rng.uniform(-0.25, 0.25))
        categories = ["Books"] if i % 3 == 0 else ["Tools"]
        items.append(await make_legacy_item(owner, f"item {i}", categories, location=location))

    for radius in (0.5, 2.0, 5.0, 12.0):
        expected = sorted(
            (geohash.distance_km(item.location, AMSTERDAM), item.id)
            for item in items
            if geohash.within_radius(item.location, AMSTERDAM, radius)
        )
        matches = await services.items.items_by_radius(AMSTERDAM, radius)
        assert [(round(d, 9), item.id) for item, d in matches] == [(round(d, 9), i) for d, i in expected]

    books = await services.items.items_by_radius(AMSTERDAM, 12.0, categories=["Books"])
    assert books
    assert all(item.categories == ["Books"] for item, _ in books)


@pytest.mark.asyncio
async def test_items_by_radius_filters_and_pages(services, make_user, make_legacy_item, session):
    owner = await make_user()
    near = await make_legacy_item(owner, "Near", ["A"], location=(AMSTERDAM[0] + 0.001, AMSTERDAM[1]))
    mid = await make_legacy_item(owner, "Mid", ["A"], location=(AMSTERDAM[0] + 0.01, AMSTERDAM[1]))
    far = await make_legacy_item(owner, "Far away", ["A"], location=(AMSTERDAM[0] + 0.5, AMSTERDAM[1]))
    mid.status = ItemStatus.GIFT
    await session.flush()

    page = await services.items.items_by_radius(AMSTERDAM, 5, skip=1, limit=1)
    assert [item.id for item, _ in page] == [mid.id]
    gifts = await services.items.items_by_radius(AMSTERDAM, 5, status=ItemStatus.GIFT)
    assert [item.id for item, _ in gifts] == [mid.id]
    named = await services.items.items_by_radius(AMSTERDAM, 100, keyword="Far")
    assert [item.id for item, _ in named] == [far.id]
    assert near.id not in [item.id for item, _ in named]


@pytest.mark.asyncio
async def test_items_by_radius_reaches_across_the_pole(services, make_user, make_legacy_item):
    owner = await make_user(location=(89.0, 180.0))
    item = await make_legacy_item(owner, "Sledge", ["Outdoor"])

    matches = await services.items.items_by_radius((89.0, 0.0), 300)

    assert [(found.id, round(d, 2)) for found, d in matches] == [(item.id, 222.39)]


@pytest.mark.asyncio
async def test_items_by_user_and_recent(services, make_user):
    owner = await make_user()
    first = await services.items.create(owner, ItemCreate(name="First", categories=["A"]))
    second = await services.items.create(owner, ItemCreate(name="Second", categories=["B"]))

    mine = await services.items.items_by_user(owner)
    assert {item.id for item in mine} == {first.id, second.id}
    only_b = await services.items.items_by_user(owner, categories=["B"])
    assert [item.id for item in only_b] == [second.id]
    recent = await services.items.recent_items(limit=1)
    assert len(recent) == 1

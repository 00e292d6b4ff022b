"""
Exchange point cache tests - nomination, un-nomination and category refresh.
"""

import pytest

from lendhub.core.exceptions import NotFoundError, ValidationError
from lendhub.db.models import Role
from lendhub.schemas.item import ItemCreate, ItemUpdate
from lendhub.schemas.user import UserUpdate
from lendhub.services.category_ledger import exchange_point_scope


@pytest.fixture
def make_exchange_point(make_user):
    async def _make(nickname: str = "Library"):
        return await make_user(nickname, location=(52.36, 4.88), role=Role.EXCHANGE_POINT)

    return _make


@pytest.mark.asyncio
async def test_nominate_then_create_then_withdraw(services, make_user, make_exchange_point):
    point = await make_exchange_point()
    user = await make_user()

    await services.users.update_profile(user, UserUpdate(exchange_point_ids=[point.id]))
    assert user.exchange_point_ids == [point.id]

    item = await services.items.create(user, ItemCreate(name="Dune", categories=["Books"]))
    assert await services.ledger.counts(exchange_point_scope(point.id)) == {"Books": 1}
    assert await services.exchange_points.item_ids(point.id) == [item.id]

    await services.users.update_profile(user, UserUpdate(exchange_point_ids=[]))
    assert user.exchange_point_ids == []
    assert await services.ledger.counts(exchange_point_scope(point.id)) == {}
    assert await services.exchange_points.item_ids(point.id) == []


@pytest.mark.asyncio
async def test_nomination_copies_existing_items(services, make_user, make_legacy_item, make_exchange_point):
    point = await make_exchange_point()
    user = await make_user()
    drill = await make_legacy_item(user, "Drill", ["Tools"])
    saw = await make_legacy_item(user, "Saw", ["Tools", "Garden"])

    await services.users.update_profile(user, UserUpdate(exchange_point_ids=[point.id, point.id, user.id]))

    assert user.exchange_point_ids == [point.id]
    assert await services.exchange_points.item_ids(point.id) == sorted([drill.id, saw.id])
    assert await services.exchange_points.item_ids(point.id, categories=["Garden"]) == [saw.id]
    assert await services.ledger.counts(exchange_point_scope(point.id)) == {"Garden": 1, "Tools": 2}


@pytest.mark.asyncio
async def test_nominating_a_regular_user_is_rejected(services, make_user):
    user = await make_user()
    neighbour = await make_user()

    with pytest.raises(ValidationError):
        await services.users.update_profile(user, UserUpdate(exchange_point_ids=[neighbour.id]))
    assert user.exchange_point_ids == []


@pytest.mark.asyncio
async def test_recategorized_item_refreshes_cache_entry(services, make_user, make_exchange_point):
    point = await make_exchange_point()
    user = await make_user()
    await services.users.update_profile(user, UserUpdate(exchange_point_ids=[point.id]))
    item = await services.items.create(user, ItemCreate(name="Atlas", categories=["Books"]))

    await services.items.update(item.id, user, ItemUpdate(categories=["Maps"]))

    assert await services.ledger.counts(exchange_point_scope(point.id)) == {"Maps": 1}
    assert await services.exchange_points.item_ids(point.id, categories=["Maps"]) == [item.id]
    assert await services.exchange_points.item_ids(point.id, categories=["Books"]) == []


@pytest.mark.asyncio
async def test_combined_categories_include_own_and_contributed(services, make_user, make_exchange_point):
    point = await make_exchange_point()
    user = await make_user()
    await services.items.create(point, ItemCreate(name="House copy", categories=["Books"]))
    await services.users.update_profile(user, UserUpdate(exchange_point_ids=[point.id]))
    await services.items.create(user, ItemCreate(name="Emma", categories=["Books", "Classics"]))

    assert await services.exchange_points.combined_categories(point.id) == {"Books": 2, "Classics": 1}
    assert await services.users.get_or_compute_categories(point.id) == {"Books": 2, "Classics": 1}
    assert await services.users.get_or_compute_categories(user.id) == {"Books": 1, "Classics": 1}


@pytest.mark.asyncio
async def test_combined_categories_of_regular_user_is_not_found(services, make_user):
    user = await make_user()
    with pytest.raises(NotFoundError):
        await services.exchange_points.combined_categories(user.id)


@pytest.mark.asyncio
async def test_items_by_user_for_exchange_point_reads_cache(services, make_user, make_exchange_point):
    point = await make_exchange_point()
    user = await make_user()
    await services.users.update_profile(user, UserUpdate(exchange_point_ids=[point.id]))
    lent = await services.items.create(user, ItemCreate(name="Tent", categories=["Outdoor"]))

    items = await services.items.items_by_user(point, exchange_point=True)

    assert [item.id for item in items] == [lent.id]
    assert await services.exchange_points.list_exchange_points() == [point]


@pytest.mark.asyncio
async def test_add_and_remove_cache_entries(services, make_user, make_legacy_item, make_exchange_point):
    point = await make_exchange_point()
    user = await make_user()
    first = await make_legacy_item(user, "Kettle", ["Kitchen"])
    second = await make_legacy_item(user, "Pan", ["Kitchen"])

    await services.exchange_points.add_items(point.id, user.id, {first.id: ["Kitchen"], second.id: ["Kitchen"]})
    removed = await services.exchange_points.remove_items(point.id, [first.id, 999])

    assert removed == 1
    assert await services.exchange_points.item_ids(point.id) == [second.id]
    assert await services.exchange_points.remove_items(point.id, []) == 0

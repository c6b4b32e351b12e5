import pytest

from resourcekit.db.filters import UnsupportedFilter
from resourcekit.db.models import Post, Widget
from resourcekit.db.sql import SqlCollection


@pytest.fixture
def widgets(session_factory):
    return SqlCollection(Widget, session_factory)


async def _seed(collection):
    for ident, name, price, in_stock in [
        ("w1", "Red Apple", 5, True),
        ("w2", "Green apple", 12, False),
        ("w3", "Banana", 7, True),
    ]:
        await collection.create({"id": ident, "name": name, "price": price, "in_stock": in_stock})


@pytest.mark.asyncio
async def test_create_assigns_store_fields_and_drops_unknown_keys(widgets):
    doc = await widgets.create({"name": "Gizmo", "price": "4", "colour": "red"})
    assert len(doc["id"]) == 32
    assert doc["price"] == 4
    assert doc["in_stock"] is True
    assert doc["created_at"] is not None
    assert "colour" not in doc


@pytest.mark.asyncio
async def test_find_in_insertion_order_with_window(widgets):
    await _seed(widgets)
    assert [d["id"] for d in await widgets.find({})] == ["w1", "w2", "w3"]
    assert [d["id"] for d in await widgets.find({}, skip=1, limit=1)] == ["w2"]
    assert await widgets.count({}) == 3


@pytest.mark.asyncio
async def test_query_string_values_are_coerced(widgets):
    await _seed(widgets)
    assert [d["id"] for d in await widgets.find({"price": "12"})] == ["w2"]
    assert [d["id"] for d in await widgets.find({"in_stock": "false"})] == ["w2"]
    assert await widgets.find({"price": "twelve"}) == []
    assert await widgets.count({"price": {"$gte": "7"}}) == 2
    assert [d["id"] for d in await widgets.find({"id": {"$in": ["w3", "w9"]}})] == ["w3"]
    assert await widgets.count({"id": {"$nin": ["w1"]}}) == 2
    assert await widgets.count({"price": {"$ne": 5}}) == 2


@pytest.mark.asyncio
async def test_case_insensitive_regex_union(widgets):
    await _seed(widgets)
    filter = {"$or": [{"name": {"$regex": "APPLE", "$options": "i"}}, {"price": {"$regex": "^7$"}}]}
    assert [d["id"] for d in await widgets.find(filter)] == ["w1", "w2", "w3"]
    assert await widgets.count({"name": {"$regex": "apple"}}) == 1


@pytest.mark.asyncio
async def test_unknown_fields_match_nothing(widgets):
    await _seed(widgets)
    assert await widgets.find({"colour": "red"}) == []
    assert await widgets.count({"colour": {"$exists": False}}) == 3


@pytest.mark.asyncio
async def test_unsupported_filters_raise(widgets):
    with pytest.raises(UnsupportedFilter):
        await widgets.find({"name": {"$regex": "a", "$options": "m"}})
    with pytest.raises(UnsupportedFilter):
        await widgets.find({"$where": "1"})


@pytest.mark.asyncio
async def test_update_and_delete(widgets):
    await _seed(widgets)
    updated = await widgets.find_one_and_update({"id": "w3"}, {"$set": {"price": "8", "unknown": 1}})
    assert updated["price"] == 8
    assert (await widgets.find_one({"id": "w3"}))["price"] == 8
    assert await widgets.find_one_and_update({"id": "nope"}, {"$set": {"price": 1}}) is None

    removed = await widgets.find_one_and_delete({"id": "w3"})
    assert removed["name"] == "Banana"
    assert await widgets.find_one_and_delete({"id": "w3"}) is None
    assert await widgets.count({}) == 2


@pytest.mark.asyncio
async def test_models_share_the_adapter(session_factory):
    posts = SqlCollection(Post, session_factory)
    created = await posts.create({"title": "Hello", "author": "a@example.com"})
    assert (await posts.find_one({"author": "a@example.com"}))["id"] == created["id"]
    assert posts.primary_key == "id"

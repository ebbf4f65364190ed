"""
Unit tests for the in-process DocumentStore used by tests and local runs.
"""
from datetime import datetime, timezone

import pytest

from inkmatch.core.errors import ConflictError
from inkmatch.db.store import InMemoryDocumentStore


@pytest.mark.unit
@pytest.mark.asyncio
async def test_insert_duplicate_conflicts():
    store = InMemoryDocumentStore()
    await store.insert("c", "x", {"v": 1})
    with pytest.raises(ConflictError):
        await store.insert("c", "x", {"v": 2})
    assert (await store.get("c", "x"))["v"] == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reads_are_copies():
    store = InMemoryDocumentStore()
    await store.insert("c", "x", {"items": [1]})
    doc = await store.get("c", "x")
    doc["items"].append(2)
    assert (await store.get("c", "x"))["items"] == [1]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_replace_if_version():
    store = InMemoryDocumentStore()
    await store.insert("bookings", "b1", {"version": 0, "status": "pending"})

    assert await store.replace_if_version("bookings", "b1", 0, {"version": 1, "status": "accepted"}) is True
    # stale writer loses
    assert await store.replace_if_version("bookings", "b1", 0, {"version": 1, "status": "declined"}) is False
    assert await store.replace_if_version("bookings", "missing", 0, {"version": 1}) is False
    assert (await store.get("bookings", "b1"))["status"] == "accepted"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_find_operators_and_dotted_paths():
    store = await _seeded()
    ids = lambda docs: sorted(d["_id"] for d in docs)

    assert ids(await store.find("artists", {"location.latitude": {"$gte": 34.5, "$lte": 35.5}})) == ["a1"]
    assert ids(await store.find("artists", {"artist_id": {"$in": ["a2", "a3", "zz"]}})) == ["a2", "a3"]
    assert ids(await store.find("artists", {"rating": {"$gt": 3.0}})) == ["a1"]
    assert ids(await store.find("artists", {"rating": {"$lt": 4.0}})) == ["a2"]
    assert ids(await store.find("artists", {"artist_id": {"$ne": "a1"}})) == ["a2", "a3"]
    # array fan-out
    assert ids(await store.find("artists", {"tags": "color"})) == ["a1"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_find_array_of_subdocuments():
    store = InMemoryDocumentStore()
    await store.insert("schedules", "d1", {"slots": [{"booking_id": None}, {"booking_id": "b1"}]})
    await store.insert("schedules", "d2", {"slots": [{"booking_id": "b2"}]})
    docs = await store.find("schedules", {"slots.booking_id": "b1"})
    assert [d["_id"] for d in docs] == ["d1"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_find_sort_and_limit():
    store = await _seeded()
    docs = await store.find("artists", {}, sort=[("rating", -1)])
    # documents without the sort key go last
    assert [d["_id"] for d in docs] == ["a1", "a2", "a3"]
    docs = await store.find("artists", {}, sort=[("location.latitude", 1)], limit=2)
    assert [d["_id"] for d in docs] == ["a3", "a1"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_datetime_range_filter():
    store = InMemoryDocumentStore()
    for i, hour in enumerate((8, 12, 20)):
        await store.insert("bookings", f"b{i}", {"when": datetime(2030, 5, 14, hour, tzinfo=timezone.utc)})
    docs = await store.find(
        "bookings",
        {"when": {"$gte": datetime(2030, 5, 14, 10, tzinfo=timezone.utc), "$lte": datetime(2030, 5, 14, 21, tzinfo=timezone.utc)}},
        sort=[("when", 1)],
    )
    assert [d["_id"] for d in docs] == ["b1", "b2"]


async def _seeded() -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    await store.insert("artists", "a1", {"artist_id": "a1", "rating": 4.5, "location": {"latitude": 35.0}, "tags": ["ink", "color"]})
    await store.insert("artists", "a2", {"artist_id": "a2", "rating": 3.0, "location": {"latitude": 36.0}, "tags": ["ink"]})
    await store.insert("artists", "a3", {"artist_id": "a3", "location": {"latitude": 34.0}})
    return store

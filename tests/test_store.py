import asyncio

import pytest

from spoken_ledger.errors import CategoryConflictError, CategoryValidationError
from spoken_ledger.integration.store import InMemoryCategoryStore
from spoken_ledger.models import CategoryRecord


@pytest.mark.anyio
async def test_create_and_list() -> None:
    store = InMemoryCategoryStore()

    record = await store.create_category("u1", "  Groceries ", color="#F97316")

    assert record.name == "Groceries"
    assert record.user_id == "u1"
    assert record.type == "expense"
    assert record.color == "#F97316"
    assert await store.list_categories("u1") == [record]
    assert await store.list_categories("u2") == []


@pytest.mark.anyio
async def test_duplicate_name_conflicts() -> None:
    store = InMemoryCategoryStore({"u1": [CategoryRecord(id="c1", name="Food")]})

    with pytest.raises(CategoryConflictError) as exc_info:
        await store.create_category("u1", "FOOD")

    assert exc_info.value.name == "FOOD"
    created = await store.create_category("u2", "Food")
    assert created.user_id == "u2"


@pytest.mark.anyio
async def test_blank_name_is_invalid() -> None:
    store = InMemoryCategoryStore()
    with pytest.raises(CategoryValidationError) as exc_info:
        await store.create_category("u1", "   ")
    assert exc_info.value.field == "name"


@pytest.mark.anyio
async def test_concurrent_creates_keep_one() -> None:
    store = InMemoryCategoryStore()

    results = await asyncio.gather(
        store.create_category("u1", "Travel"),
        store.create_category("u1", "travel"),
        return_exceptions=True,
    )

    assert sum(isinstance(result, CategoryRecord) for result in results) == 1
    assert sum(isinstance(result, CategoryConflictError) for result in results) == 1
    assert len(await store.list_categories("u1")) == 1


@pytest.mark.anyio
async def test_dedupe_removes_duplicate_names() -> None:
    store = InMemoryCategoryStore(
        {
            "u1": [
                CategoryRecord(id="c1", name="Food"),
                CategoryRecord(id="c2", name="food "),
                CategoryRecord(id="c3", name="Travel"),
                CategoryRecord(id="c4", name="FOOD"),
            ],
            "u2": [CategoryRecord(id="x1", name="Food"), CategoryRecord(id="x2", name="food")],
        }
    )

    merges = await store.dedupe_categories("u1")

    assert [(m.keep_id, m.removed_id) for m in merges] == [("c1", "c2"), ("c1", "c4")]
    assert [record.id for record in await store.list_categories("u1")] == ["c1", "c3"]
    assert len(await store.list_categories("u2")) == 2
    assert await store.dedupe_categories("u1") == []

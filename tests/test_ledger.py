from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from spoken_ledger.errors import (
    CategoryConflictError,
    CategoryResolutionError,
    CategoryValidationError,
)
from spoken_ledger.integration.ledger import LedgerClient

CATEGORIES = [
    {"_id": "c1", "name": "Food", "type": "expense", "color": "#EF4444", "userId": "u1"},
    {"_id": "c2", "name": "Salary", "type": "income", "userId": "u1"},
    {"name": "broken"},
]


def make_response(status_code: int = 200, body: Any = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.content = b"{}" if body is not None else b""
    return response


def make_client() -> MagicMock:
    client = MagicMock()
    client.is_closed = False
    client.get = AsyncMock(return_value=make_response(body=CATEGORIES))
    client.post = AsyncMock()
    client.aclose = AsyncMock()
    return client


def make_ledger(client: MagicMock, ttl: float = 60.0) -> LedgerClient:
    return LedgerClient(
        base_url="http://ledger/",
        token="secret",
        client=client,
        categories_cache_ttl=ttl,
    )


@pytest.mark.anyio
async def test_list_categories_parses_records() -> None:
    client = make_client()
    ledger = make_ledger(client)

    records = await ledger.list_categories("u1")

    assert [(r.id, r.name, r.type) for r in records] == [("c1", "Food", "expense"), ("c2", "Salary", "income")]
    args, kwargs = client.get.call_args
    assert args[0] == "http://ledger/api/v1/users/u1/categories"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"


@pytest.mark.anyio
async def test_list_accepts_data_envelope() -> None:
    client = make_client()
    client.get.return_value = make_response(body={"data": CATEGORIES[:1]})
    records = await make_ledger(client).list_categories("u1")
    assert [r.id for r in records] == ["c1"]


@pytest.mark.anyio
async def test_list_uses_cache_until_bypassed() -> None:
    client = make_client()
    ledger = make_ledger(client)

    await ledger.list_categories("u1")
    await ledger.list_categories("u1")
    assert client.get.await_count == 1

    await ledger.list_categories("u1", use_cache=False)
    assert client.get.await_count == 2


@pytest.mark.anyio
async def test_zero_ttl_disables_cache() -> None:
    client = make_client()
    ledger = make_ledger(client, ttl=0)
    await ledger.list_categories("u1")
    await ledger.list_categories("u1")
    assert client.get.await_count == 2


@pytest.mark.anyio
async def test_fetch_error_returns_stale_cache() -> None:
    client = make_client()
    ledger = make_ledger(client)
    first = await ledger.list_categories("u1")

    client.get.side_effect = httpx.ConnectError("down")
    assert await ledger.list_categories("u1", use_cache=False) == first


@pytest.mark.anyio
async def test_fetch_error_without_cache_is_raised() -> None:
    client = make_client()
    client.get.side_effect = httpx.ConnectError("down")
    with pytest.raises(httpx.ConnectError):
        await make_ledger(client).list_categories("u1")


@pytest.mark.anyio
async def test_create_category() -> None:
    client = make_client()
    client.post.return_value = make_response(
        201, {"_id": "c9", "name": "Travel", "type": "expense", "color": "#06B6D4", "userId": "u1"}
    )
    ledger = make_ledger(client)
    await ledger.list_categories("u1")

    record = await ledger.create_category("u1", "Travel")

    assert record.id == "c9"
    assert record.name == "Travel"
    _, kwargs = client.post.call_args
    assert kwargs["json"] == {"name": "Travel", "type": "expense", "userId": "u1", "color": "#06B6D4"}
    # cache was invalidated by the create
    await ledger.list_categories("u1")
    assert client.get.await_count == 2


@pytest.mark.anyio
async def test_create_conflict() -> None:
    client = make_client()
    client.post.return_value = make_response(409, {"error": "Category name already exists"})

    with pytest.raises(CategoryConflictError) as exc_info:
        await make_ledger(client).create_category("u1", "Food")

    assert exc_info.value.name == "Food"


@pytest.mark.anyio
async def test_create_validation_error() -> None:
    client = make_client()
    client.post.return_value = make_response(400, {"error": "Name is required", "field": "name"})

    with pytest.raises(CategoryValidationError) as exc_info:
        await make_ledger(client).create_category("u1", "")

    assert exc_info.value.field == "name"
    assert str(exc_info.value) == "Name is required"


@pytest.mark.anyio
async def test_missing_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LEDGER_URL", raising=False)
    monkeypatch.delenv("LEDGER_TOKEN", raising=False)
    client = make_client()
    ledger = LedgerClient(client=client)

    assert await ledger.list_categories("u1") == []
    with pytest.raises(CategoryResolutionError):
        await ledger.create_category("u1", "Food")
    with pytest.raises(CategoryResolutionError):
        await ledger.dedupe_categories("u1")
    client.get.assert_not_called()
    client.post.assert_not_called()


@pytest.mark.anyio
async def test_dedupe_categories() -> None:
    client = make_client()
    client.post.return_value = make_response(
        body={
            "merged": [
                {"keepId": "c1", "removedId": "c9", "movedTransactions": 3},
                {"keepId": "c1"},
            ]
        }
    )
    ledger = make_ledger(client)
    await ledger.list_categories("u1")

    merges = await ledger.dedupe_categories("u1")

    assert [(m.keep_id, m.removed_id, m.moved_transactions) for m in merges] == [("c1", "c9", 3)]
    assert client.post.call_args.args[0] == "http://ledger/api/v1/users/u1/categories/dedupe"
    await ledger.list_categories("u1")
    assert client.get.await_count == 2


@pytest.mark.anyio
async def test_aclose() -> None:
    client = make_client()
    await make_ledger(client).aclose()
    client.aclose.assert_awaited_once()

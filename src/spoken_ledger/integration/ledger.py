import asyncio
import os
from time import monotonic
from typing import Any

import httpx

from spoken_ledger.domain.categories import DEFAULT_NEW_CATEGORY_COLOR
from spoken_ledger.errors import (
    CategoryConflictError,
    CategoryResolutionError,
    CategoryValidationError,
)
from spoken_ledger.integration.store import CategoryStore
from spoken_ledger.logger import get_logger
from spoken_ledger.models import CategoryMerge, CategoryRecord

logger = get_logger(__name__)

DEFAULT_CATEGORIES_CACHE_TTL_SECONDS = 60.0


def _parse_env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %.2f.", name, raw, default)
        return default


def _to_record(item: dict[str, Any], user_id: str) -> CategoryRecord | None:
    category_id = item.get("id") or item.get("_id")
    name = item.get("name")
    if not category_id or not name:
        return None
    category_type = item.get("type") if item.get("type") in {"expense", "income"} else "expense"
    return CategoryRecord(
        id=str(category_id),
        name=str(name),
        type=category_type,
        color=item.get("color"),
        user_id=str(item.get("userId") or user_id),
    )


class LedgerClient(CategoryStore):
    """Category endpoints of the expense ledger REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        categories_cache_ttl: float | None = None,
    ):
        self.base_url = (base_url or os.getenv("LEDGER_URL") or "").rstrip("/") or None
        self.token = token or os.getenv("LEDGER_TOKEN")
        self.headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._client = client
        self._client_lock = asyncio.Lock()
        self._cache_lock = asyncio.Lock()
        self._cache: dict[str, tuple[list[CategoryRecord], float]] = {}
        cache_ttl = categories_cache_ttl
        if cache_ttl is None:
            cache_ttl = _parse_env_float("LEDGER_CATEGORIES_TTL", DEFAULT_CATEGORIES_CACHE_TTL_SECONDS)
        self._cache_ttl = max(0.0, cache_ttl)

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            # Another task may have created it while we waited.
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
            return client

    def _categories_url(self, user_id: str) -> str:
        return f"{self.base_url}/api/v1/users/{user_id}/categories"

    def invalidate(self, user_id: str | None = None) -> None:
        if user_id is None:
            self._cache.clear()
        else:
            self._cache.pop(user_id, None)

    def _get_cached(self, user_id: str, *, allow_stale: bool = False) -> list[CategoryRecord] | None:
        entry = self._cache.get(user_id)
        if entry is None or self._cache_ttl <= 0:
            return None
        records, expires_at = entry
        if not allow_stale and monotonic() >= expires_at:
            return None
        return list(records)

    def _store_cache(self, user_id: str, records: list[CategoryRecord]) -> None:
        if self._cache_ttl <= 0:
            return
        self._cache[user_id] = (list(records), monotonic() + self._cache_ttl)

    async def _fetch_categories(self, user_id: str) -> list[CategoryRecord]:
        client = await self._get_client()
        response = await client.get(self._categories_url(user_id), headers=self.headers)
        response.raise_for_status()
        data = response.json()
        items = data.get("data", []) if isinstance(data, dict) else data
        records = []
        for item in items or []:
            if isinstance(item, dict):
                record = _to_record(item, user_id)
                if record is not None:
                    records.append(record)
        return records

    async def list_categories(self, user_id: str, *, use_cache: bool = True) -> list[CategoryRecord]:
        if not self.base_url or not self.token:
            logger.error("[LEDGER] Ledger credentials missing.")
            return []

        async with self._cache_lock:
            if use_cache:
                cached = self._get_cached(user_id)
                if cached is not None:
                    return cached
            try:
                records = await self._fetch_categories(user_id)
            except Exception as exc:
                logger.error("[LEDGER] Error fetching categories for %s: %s", user_id, exc)
                stale = self._get_cached(user_id, allow_stale=True)
                if stale is not None:
                    return stale
                raise
            self._store_cache(user_id, records)
            return records

    async def create_category(
        self,
        user_id: str,
        name: str,
        *,
        category_type: str = "expense",
        color: str = DEFAULT_NEW_CATEGORY_COLOR,
    ) -> CategoryRecord:
        if not self.base_url or not self.token:
            raise CategoryResolutionError("Ledger credentials missing")

        client = await self._get_client()
        payload = {"name": name, "type": category_type, "userId": user_id, "color": color}
        response = await client.post(self._categories_url(user_id), headers=self.headers, json=payload)
        if response.status_code == 409:
            self.invalidate(user_id)
            raise CategoryConflictError(name)
        if response.status_code == 400:
            detail = response.json() if response.content else {}
            raise CategoryValidationError(
                str(detail.get("error") or "Invalid category"),
                field=detail.get("field"),
            )
        response.raise_for_status()

        self.invalidate(user_id)
        record = _to_record(response.json(), user_id)
        if record is None:
            raise CategoryResolutionError(f"Ledger returned no id for category {name!r}")
        logger.info("[LEDGER] Created category '%s' (%s) for %s", record.name, record.id, user_id)
        return record

    async def dedupe_categories(self, user_id: str) -> list[CategoryMerge]:
        if not self.base_url or not self.token:
            raise CategoryResolutionError("Ledger credentials missing")

        client = await self._get_client()
        response = await client.post(f"{self._categories_url(user_id)}/dedupe", headers=self.headers)
        response.raise_for_status()
        self.invalidate(user_id)

        data = response.json() if response.content else {}
        merges = []
        for item in data.get("merged", []) if isinstance(data, dict) else []:
            keep_id = item.get("keepId") if isinstance(item, dict) else None
            removed_id = item.get("removedId") if isinstance(item, dict) else None
            if not keep_id or not removed_id:
                continue
            merges.append(
                CategoryMerge(
                    keep_id=str(keep_id),
                    removed_id=str(removed_id),
                    moved_transactions=int(item.get("movedTransactions") or 0),
                )
            )
        logger.info("[LEDGER] Merged %d duplicate categories for %s", len(merges), user_id)
        return merges

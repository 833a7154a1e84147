import asyncio
from abc import ABC, abstractmethod
from uuid import uuid4

from spoken_ledger.domain.categories import DEFAULT_NEW_CATEGORY_COLOR, name_key
from spoken_ledger.errors import CategoryConflictError, CategoryValidationError
from spoken_ledger.logger import get_logger
from spoken_ledger.models import CategoryMerge, CategoryRecord
from spoken_ledger.services.reconciliation import plan_category_merges

logger = get_logger(__name__)


class CategoryStore(ABC):
    """Where the user's categories live. Names are unique per user, ignoring case."""

    @abstractmethod
    async def list_categories(self, user_id: str, *, use_cache: bool = True) -> list[CategoryRecord]:
        pass

    @abstractmethod
    async def create_category(
        self,
        user_id: str,
        name: str,
        *,
        category_type: str = "expense",
        color: str = DEFAULT_NEW_CATEGORY_COLOR,
    ) -> CategoryRecord:
        """Create a category. Raises CategoryConflictError if the name is taken."""
        pass

    @abstractmethod
    async def dedupe_categories(self, user_id: str) -> list[CategoryMerge]:
        """Fold same-name categories into the first one and delete the rest."""
        pass

    async def aclose(self) -> None:
        return None


class InMemoryCategoryStore(CategoryStore):
    def __init__(self, categories: dict[str, list[CategoryRecord]] | None = None):
        self._categories: dict[str, list[CategoryRecord]] = {
            user_id: list(records) for user_id, records in (categories or {}).items()
        }
        self._lock = asyncio.Lock()

    async def list_categories(self, user_id: str, *, use_cache: bool = True) -> list[CategoryRecord]:
        return list(self._categories.get(user_id, []))

    async def create_category(
        self,
        user_id: str,
        name: str,
        *,
        category_type: str = "expense",
        color: str = DEFAULT_NEW_CATEGORY_COLOR,
    ) -> CategoryRecord:
        clean = name.strip()
        if not clean:
            raise CategoryValidationError("Name is required", field="name")

        async with self._lock:
            records = self._categories.setdefault(user_id, [])
            if any(name_key(record.name) == name_key(clean) for record in records):
                raise CategoryConflictError(clean)
            record = CategoryRecord(
                id=uuid4().hex,
                name=clean,
                type=category_type,
                color=color,
                user_id=user_id,
            )
            records.append(record)
            return record

    async def dedupe_categories(self, user_id: str) -> list[CategoryMerge]:
        async with self._lock:
            records = self._categories.get(user_id, [])
            merges = plan_category_merges(records)
            removed = {merge.removed_id for merge in merges}
            self._categories[user_id] = [record for record in records if record.id not in removed]
        if merges:
            logger.info("[DEDUPE] Removed %d duplicate categories for %s", len(merges), user_id)
        return merges

from collections.abc import Iterable

from spoken_ledger.domain.categories import name_key, strip_ai_marker
from spoken_ledger.errors import CategoryValidationError
from spoken_ledger.logger import get_logger
from spoken_ledger.models import (
    CategoryMerge,
    CategoryRecord,
    ReconcileAction,
    ReconciliationResult,
)

logger = get_logger(__name__)


def dedupe_categories(categories: Iterable[CategoryRecord]) -> list[CategoryRecord]:
    """Keep the first category for each case-insensitive name. Blank names are dropped."""
    seen: set[str] = set()
    unique: list[CategoryRecord] = []
    for category in categories:
        key = name_key(category.name)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(category)
    return unique


def plan_category_merges(categories: Iterable[CategoryRecord]) -> list[CategoryMerge]:
    """List which duplicate categories would fold into the first one with the same name."""
    canonical: dict[str, CategoryRecord] = {}
    merges: list[CategoryMerge] = []
    for category in categories:
        key = name_key(category.name)
        if not key:
            continue
        keep = canonical.setdefault(key, category)
        if keep is not category:
            merges.append(CategoryMerge(keep_id=keep.id, removed_id=category.id, name=keep.name))
    return merges


def find_category(name: str, categories: Iterable[CategoryRecord]) -> CategoryRecord | None:
    key = name_key(name)
    for category in categories:
        if name_key(category.name) == key:
            return category
    return None


def reconcile_category(
    suggested_name: str,
    is_ai_suggested: bool,
    existing_categories: Iterable[CategoryRecord],
) -> ReconciliationResult:
    """
    Map a suggested or typed category name onto the user's categories.

    Reuses an existing category when the name matches ignoring case, keeping
    the user's capitalization. Otherwise asks the caller to create one.
    Raises CategoryValidationError when the name is blank.
    """
    clean_name = strip_ai_marker(suggested_name)
    if not clean_name:
        raise CategoryValidationError("Category name is required", field="name")

    origin = "ai" if is_ai_suggested else "user"
    categories = dedupe_categories(existing_categories)
    match = find_category(clean_name, categories)
    if match is not None:
        logger.debug("[RECONCILE] '%s' -> existing '%s' (%s)", clean_name, match.name, match.id)
        return ReconciliationResult(
            action=ReconcileAction.USE_EXISTING,
            clean_name=clean_name,
            origin=origin,
            category_id=match.id,
        )

    logger.debug("[RECONCILE] '%s' not found; create (%s)", clean_name, origin)
    return ReconciliationResult(
        action=ReconcileAction.CREATE,
        clean_name=clean_name,
        origin=origin,
        name_to_create=clean_name,
    )

import re

from spoken_ledger.models import CategoryBucket

UNCATEGORIZED = "Uncategorized"
DEFAULT_NEW_CATEGORY_COLOR = "#06B6D4"

CATEGORY_COLORS = {
    "food": "#EF4444",
    "groceries": "#F97316",
    "rent": "#DC2626",
    "utilities": "#3B82F6",
    "transportation": "#10B981",
    "entertainment": "#8B5CF6",
    "travel": "#06B6D4",
    "gifts": "#EC4899",
    "gift": "#EC4899",
    "misc": "#FBBF24",
    "uncategorized": "#9CA3AF",
}

_AI_MARKER_RE = re.compile(r"\s*\(\s*ai\s+suggested\s*\)\s*$", re.IGNORECASE)


def strip_ai_marker(name: str) -> str:
    """'Travel (AI Suggested)' -> 'Travel'."""
    return _AI_MARKER_RE.sub("", name or "").strip()


def name_key(name: str | None) -> str:
    return (name or "").strip().lower()


def normalize_category_key(name: str | None) -> str:
    if not name:
        return ""
    key = re.sub(r"\s+", "_", name.strip().lower())
    return re.sub(r"[^a-z0-9_]", "", key)


def display_name(label: CategoryBucket | str) -> str:
    value = label.value if isinstance(label, CategoryBucket) else str(label).strip()
    if value.lower() == CategoryBucket.MISC.value:
        return UNCATEGORIZED
    return value[:1].upper() + value[1:]


def category_color(name: str) -> str:
    return CATEGORY_COLORS.get(normalize_category_key(name), DEFAULT_NEW_CATEGORY_COLOR)

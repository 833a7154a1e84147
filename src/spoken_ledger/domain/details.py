import re
from datetime import datetime, timedelta

from spoken_ledger.domain.numbers import NUMBER_WORDS

_VENDOR_RE = re.compile(
    r"\b(?:at|from)\s+([\w&.'\- ]+?)(?=(?:\s+(?:this|today|yesterday|tomorrow|on|in|at|for)\b|[.,]|$))",
    re.IGNORECASE,
)
_VENDOR_TAIL_PATTERNS = (
    re.compile(r"\b(this morning|this evening|this afternoon|this|today|yesterday|tomorrow)\b", re.IGNORECASE),
    re.compile(
        r"\bfor\s+(?:some\s+)?(?:food|coffee|lunch|dinner|breakfast|snack|a meal|takeout|some)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:using|via|with|on)\s+(?:my\s+)?(?:credit card|debit card|visa|mastercard|amex|"
        r"american express|apple pay|google pay|gpay|card)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:using|via|with|on)\b.*$", re.IGNORECASE),
    re.compile(r"\bfor\b.*$", re.IGNORECASE),
)

_AMOUNT_WORDS_RE = re.compile(
    r"\$\s*[0-9]+(?:\.[0-9]{1,2})?|[0-9]+(?:\.[0-9]{1,2})?\s*(?:dollars|bucks|usd)\b",
    re.IGNORECASE,
)
_PAYMENT_WORDS_RE = re.compile(
    r"\b(visa|mastercard|master card|amex|american express|credit card|debit card|debit|cash|"
    r"apple pay|google pay|gpay)\b",
    re.IGNORECASE,
)
_WORD_AMOUNT_RE = re.compile(
    r"\b(?:" + "|".join(sorted(NUMBER_WORDS, key=len, reverse=True)) + r"|and|dollars?|bucks|cents?)\b",
    re.IGNORECASE,
)
_FILLER_RE = re.compile(
    r"\b(i\s+(spent|bought|paid|purchased)|spent|bought|paid|purchased|for|cost|on|at|using|via|with)\b",
    re.IGNORECASE,
)
_TIME_WORD_RE = re.compile(
    r"\b(this\s+(morning|afternoon|evening|night)|today|yesterday|tomorrow)\b",
    re.IGNORECASE,
)
_ARTICLES_RE = re.compile(r"\b(a|an|the|my)\b", re.IGNORECASE)

# First match wins; card brands before the generic credit/debit words.
PAYMENT_TYPES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bvisa\b"), "Visa"),
    (re.compile(r"\b(mastercard|master card|master-card)\b"), "Mastercard"),
    (re.compile(r"\b(amex|american express)\b"), "Amex"),
    (re.compile(r"\b(credit card|credit)\b"), "Credit Card"),
    (re.compile(r"\b(debit card|debit)\b"), "Debit Card"),
    (re.compile(r"\bcash\b"), "Cash"),
    (re.compile(r"\b(apple pay|applepay)\b"), "Apple Pay"),
    (re.compile(r"\b(google pay|googlepay|gpay)\b"), "Google Pay"),
)

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_SLASH_DATE_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{2,4})\b")
_MONTH_DATE_RE = re.compile(
    r"\b(?:on\s*)?(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?|"
    r"aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
    r"[\s.,]*(\d{1,2})(?:st|nd|rd|th)?(?:[\s,]*(\d{4}))?",
    re.IGNORECASE,
)


def extract_vendor(text: str) -> str | None:
    """Pull the merchant out of phrases like "at Starbucks this morning"."""
    if not text:
        return None
    match = _VENDOR_RE.search(text)
    if not match:
        return None
    vendor = match.group(1).strip().rstrip(".,")
    for pattern in _VENDOR_TAIL_PATTERNS:
        vendor = pattern.sub("", vendor).strip()
    vendor = re.sub(r"\s+", " ", vendor)
    return vendor or None


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:] if value else value


def extract_short_description(text: str, vendor: str | None = None) -> str:
    if not text:
        return ""
    s = text
    if vendor:
        s = re.sub(r"(?:at|from)\s+" + re.escape(vendor), "", s, count=1, flags=re.IGNORECASE)
    s = _AMOUNT_WORDS_RE.sub("", s)
    s = _WORD_AMOUNT_RE.sub("", s)
    s = _PAYMENT_WORDS_RE.sub("", s)
    s = _FILLER_RE.sub("", s)

    time_word: str | None = None
    time_match = _TIME_WORD_RE.search(s)
    if time_match:
        time_word = (time_match.group(2) or time_match.group(1)).lower()
        s = s.replace(time_match.group(0), "", 1)

    s = _ARTICLES_RE.sub(" ", s)
    s = re.sub(r"[^\w\s'&-]", " ", s)
    s = re.sub(r"\s+", " ", s).strip()

    parts = s.split()
    noun = parts[-1] if parts else ""
    # "cup of coffee" -> "coffee", but "a cup" -> "cup"
    if noun.lower() == "cup" and len(parts) >= 2:
        noun = parts[-2]

    if time_word:
        description = f"{time_word} {noun}".strip()
    else:
        description = noun or s[:30]
    description = _capitalize(description).strip()
    if not description:
        description = _capitalize(text[:30]).strip()
    return description


def parse_payment_type(text: str) -> str | None:
    if not text:
        return None
    lowered = text.lower()
    for pattern, payment_type in PAYMENT_TYPES:
        if pattern.search(lowered):
            return payment_type
    return None


def _safe_datetime(year: int, month: int, day: int) -> datetime | None:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def parse_date_from_text(text: str, now: datetime | None = None) -> datetime | None:
    """Read a purchase date from relative words or common date spellings."""
    if not text:
        return None
    now = now or datetime.now()
    lowered = text.lower()

    if re.search(r"\byesterday\b", lowered):
        return now - timedelta(days=1)
    if re.search(r"\btoday\b", lowered):
        return now
    if re.search(r"\btomorrow\b", lowered):
        return now + timedelta(days=1)

    iso = _ISO_DATE_RE.search(text)
    if iso:
        parsed = _safe_datetime(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        if parsed:
            return parsed

    slash = _SLASH_DATE_RE.search(text)
    if slash:
        month, day, year = int(slash.group(1)), int(slash.group(2)), int(slash.group(3))
        if year < 100:
            year += 2000
        parsed = _safe_datetime(year, month, day)
        if parsed:
            return parsed

    named = _MONTH_DATE_RE.search(text)
    if named:
        month = _MONTHS[named.group(1)[:3].lower()]
        year = int(named.group(3)) if named.group(3) else now.year
        return _safe_datetime(year, month, int(named.group(2)))

    return None

import re
from decimal import ROUND_HALF_UP, Decimal

from spoken_ledger.domain.numbers import number_word_pattern, words_to_number
from spoken_ledger.domain.rules import Rule, first_match
from spoken_ledger.logger import get_logger

logger = get_logger(__name__)

_CENT = Decimal("0.01")
_HUNDRED = Decimal(100)

_WORD = number_word_pattern()
# A run of number words, optionally joined by "and" ("one hundred and five").
# The repeat is bounded so long runs of number words scan in linear time.
_MAX_PHRASE_WORDS = 12
_PHRASE = rf"\b{_WORD}\b(?:[\s-]+(?:and[\s-]+)?{_WORD}\b){{0,{_MAX_PHRASE_WORDS}}}"
# Never start inside a longer number ("2.555" must not yield "555").
_NUMBER = r"(?<![0-9.])[0-9]+(?:\.[0-9]+)?"
_MONEY = r"(?<![0-9.])[0-9]+(?:\.[0-9]{1,2})?"
_GROUPING_COMMA_RE = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")

_SUFFIX_MULTIPLIERS = {"k": Decimal(1000), "m": Decimal(1_000_000)}
_SCALE_MULTIPLIERS = {"hundred": Decimal(100), "thousand": Decimal(1000)}

# A number right after the currency word that closes the clause reads as cents
# ("five dollars fifty", "twenty bucks and 5 at Target").
_TRAILING_CENTS_RE = re.compile(
    rf"\s+(?:and\s+)?(?:[0-9]+|{_PHRASE})"
    r"(?=\s*(?:$|[.,;!?](?![0-9])|\b(?:at|for|on|from|in)\b))",
    re.IGNORECASE,
)


def _phrase_value(phrase: str | None) -> int | None:
    if not phrase:
        return None
    tokens = [token for token in re.split(r"[\s-]+", phrase.lower()) if token and token != "and"]
    return words_to_number(" ".join(tokens))


def _numeric_suffix(match: re.Match[str]) -> Decimal | None:
    return Decimal(match.group(1)) * _SUFFIX_MULTIPLIERS[match.group(2).lower()]


def _words_suffix(match: re.Match[str]) -> Decimal | None:
    value = _phrase_value(match.group(1))
    if value is None:
        return None
    return Decimal(value) * _SUFFIX_MULTIPLIERS[match.group(2).lower()]


def _numeric_scale(match: re.Match[str]) -> Decimal | None:
    return Decimal(match.group(1)) * _SCALE_MULTIPLIERS[match.group(2).lower()]


def _dollar_sign(match: re.Match[str]) -> Decimal | None:
    dollars = Decimal(match.group(1))
    cents_part = match.group(2) or match.group(3)
    if cents_part is None:
        return dollars
    if "." in cents_part:
        # "$5 and .50" or "$5 and 0.50 cents": already a fraction of a dollar
        return dollars + Decimal(cents_part)
    return dollars + Decimal(int(cents_part)) / _HUNDRED


def _numeric_dollars(match: re.Match[str]) -> Decimal | None:
    value = Decimal(match.group(1))
    if match.group(2) is not None:
        value += Decimal(int(match.group(2))) / _HUNDRED
    return value


def _words_dollars(match: re.Match[str]) -> Decimal | None:
    dollars = _phrase_value(match.group(1))
    if dollars is None:
        return None
    cents_words = match.group(2)
    if cents_words is None and _TRAILING_CENTS_RE.match(match.string, match.end()):
        # "five dollars fifty" is left to the mixed rule; "ten dollars two days ago" is not.
        return None
    cents = _phrase_value(cents_words) or 0
    return Decimal(dollars) + Decimal(cents) / _HUNDRED


def _words_cents(match: re.Match[str]) -> Decimal | None:
    cents = _phrase_value(match.group(1))
    if cents is None:
        return None
    return Decimal(cents) / _HUNDRED


def _mixed(match: re.Match[str]) -> Decimal | None:
    dollars = _phrase_value(match.group(1))
    if dollars is None:
        return None
    cents = 0
    if match.group(2) is not None:
        tail = int(match.group(2))
        if tail < 100:
            cents = tail
    else:
        cents = _phrase_value(match.group(3)) or 0
    return Decimal(dollars) + Decimal(cents) / _HUNDRED


def _words_scale(match: re.Match[str]) -> Decimal | None:
    value = _phrase_value(match.group(1))
    if value is None:
        return None
    return Decimal(value)


# Order is behaviour: broader patterns sit below the specific ones they would shadow.
AMOUNT_RULES: tuple[Rule[Decimal], ...] = (
    Rule(
        "numeric_suffix",
        re.compile(rf"({_NUMBER})\s*([km])\b", re.IGNORECASE),
        _numeric_suffix,
    ),
    Rule(
        "words_suffix",
        re.compile(rf"({_PHRASE})\s*([km])\b", re.IGNORECASE),
        _words_suffix,
    ),
    Rule(
        "numeric_scale",
        re.compile(rf"({_NUMBER})\s*(hundred|thousand)\b", re.IGNORECASE),
        _numeric_scale,
    ),
    Rule(
        "dollar_sign",
        re.compile(
            rf"\$\s*({_MONEY})"
            rf"(?:\s*(?:and|,)\s*(?:({_MONEY})\s*cents?|(\.[0-9]{{1,2}})(?![0-9])))?",
            re.IGNORECASE,
        ),
        _dollar_sign,
    ),
    Rule(
        "numeric_dollars",
        re.compile(
            rf"({_MONEY})\s*(?:dollars|bucks|usd)\b(?:\s*(?:and|,)\s*([0-9]+)\s*cents?)?",
            re.IGNORECASE,
        ),
        _numeric_dollars,
    ),
    Rule(
        "words_dollars",
        re.compile(
            rf"({_PHRASE})\s+(?:dollars|dollar|bucks)\b"
            rf"(?:\s*(?:and|,)?\s*({_PHRASE})\s+cents?\b)?",
            re.IGNORECASE,
        ),
        _words_dollars,
    ),
    Rule(
        "words_cents",
        re.compile(rf"({_PHRASE})\s+cents?\b", re.IGNORECASE),
        _words_cents,
    ),
    Rule(
        "mixed",
        re.compile(
            rf"({_PHRASE})\s+(?:dollars?|bucks)\s+(?:and\s+)?"
            rf"(?:([0-9]+)(?:\.[0-9]{{1,2}})?|({_PHRASE}))",
            re.IGNORECASE,
        ),
        _mixed,
    ),
    Rule(
        "words_scale",
        re.compile(
            rf"\b((?:{_WORD}[\s-]+(?:and[\s-]+)?){{0,{_MAX_PHRASE_WORDS}}}(?:hundred|thousand)\b"
            rf"(?:[\s-]+(?:and[\s-]+)?{_WORD}\b){{0,{_MAX_PHRASE_WORDS}}})",
            re.IGNORECASE,
        ),
        _words_scale,
    ),
)


def to_money(value: Decimal | float | int) -> float:
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def extract_amount(text: str | None) -> float | None:
    """Find a money amount in free text.

    Returns the value in dollars rounded to cents, or None when nothing in
    the text looks like an amount.
    """
    if not text:
        return None
    cleaned = _GROUPING_COMMA_RE.sub("", str(text))
    found = first_match(AMOUNT_RULES, cleaned)
    if found is None:
        logger.debug("[AMOUNT] No amount found in: '%s'", cleaned[:80])
        return None
    rule, value = found
    amount = to_money(value)
    logger.debug("[AMOUNT] Rule '%s' matched: %.2f", rule.name, amount)
    return amount


def format_amount(value: float) -> str:
    return f"${value:,.2f}"


_STRIP_PATTERNS = (
    re.compile(
        r"\$\s*[0-9]+(?:\.[0-9]{1,2})?(?:\s*(?:and|,)\s*[0-9]+(?:\.[0-9]{1,2})?\s*cents?)?",
        re.IGNORECASE,
    ),
    re.compile(r"[0-9]+(?:\.[0-9]{1,2})?\s*(?:dollars|bucks|usd|cents?)", re.IGNORECASE),
    re.compile(r"\b(?:\d+\s*cents?)\b", re.IGNORECASE),
)


def strip_amounts(text: str) -> str:
    """Remove numeric amount expressions so only the purchase wording remains."""
    for pattern in _STRIP_PATTERNS:
        text = pattern.sub("", text)
    return re.sub(r"\s+", " ", text).strip()

import re

SMALL_NUMBERS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
    "thirteen": 13, "fourteen": 14, "fifteen": 15, "sixteen": 16,
    "seventeen": 17, "eighteen": 18, "nineteen": 19,
}
TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
SCALES = {
    "hundred": 100,
    "thousand": 1000,
}

NUMBER_WORDS = frozenset(SMALL_NUMBERS) | frozenset(TENS) | frozenset(SCALES)

_NON_WORD_RE = re.compile(r"[^a-z\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_SPLIT_RE = re.compile(r"[ -]")


def words_to_number(phrase: str) -> int | None:
    """Convert an English number phrase ("one hundred eleven") to an integer.

    Returns None for empty input or when any token is not a number word.
    A scale word with nothing before it counts as one ("hundred" -> 100).
    """
    if not phrase:
        return None
    words = _NON_WORD_RE.sub(" ", phrase.lower())
    words = _WHITESPACE_RE.sub(" ", words).strip()
    if not words:
        return None

    total = 0
    current = 0
    for part in _SPLIT_RE.split(words):
        if part in SMALL_NUMBERS:
            current += SMALL_NUMBERS[part]
        elif part in TENS:
            current += TENS[part]
        elif part in SCALES:
            if current == 0:
                current = 1
            total += current * SCALES[part]
            current = 0
        else:
            return None
    return total + current


def number_word_pattern() -> str:
    """Regex source matching a single number word, longest alternatives first."""
    alternatives = sorted(NUMBER_WORDS, key=len, reverse=True)
    return r"(?:" + "|".join(alternatives) + r")"

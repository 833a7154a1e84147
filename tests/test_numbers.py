import re

import pytest

from spoken_ledger.domain.numbers import number_word_pattern, words_to_number


@pytest.mark.parametrize(
    ("phrase", "expected"),
    [
        ("five", 5),
        ("twenty-one", 21),
        ("one hundred eleven", 111),
        ("three thousand four hundred", 3400),
        ("Ninety  Nine", 99),
        ("zero", 0),
    ],
)
def test_words_to_number(phrase: str, expected: int) -> None:
    assert words_to_number(phrase) == expected


def test_bare_scale_counts_as_one() -> None:
    assert words_to_number("hundred") == 100
    assert words_to_number("thousand") == 1000


def test_unknown_word_rejects_phrase() -> None:
    assert words_to_number("five apples") is None
    assert words_to_number("") is None
    assert words_to_number("!!!") is None


def test_punctuation_is_ignored() -> None:
    assert words_to_number("forty, two.") == 42


def test_pattern_prefers_longest_word() -> None:
    match = re.match(number_word_pattern(), "seventeen")
    assert match is not None
    assert match.group(0) == "seventeen"

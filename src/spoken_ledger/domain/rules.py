import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Rule(Generic[T]):
    """A named pattern whose handler turns a match into a value.

    A handler returning None rejects the match, letting later rules try.
    """
    name: str
    pattern: re.Pattern[str]
    handler: Callable[[re.Match[str]], T | None]


def first_match(rules: Iterable[Rule[T]], text: str) -> tuple[Rule[T], T] | None:
    for rule in rules:
        match = rule.pattern.search(text)
        if match is None:
            continue
        value = rule.handler(match)
        if value is not None:
            return rule, value
    return None


def constant(value: T) -> Callable[[re.Match[str]], T]:
    def handler(_match: re.Match[str]) -> T:
        return value
    return handler

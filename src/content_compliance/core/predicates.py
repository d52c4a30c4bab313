"""Named, composable content predicates.

Every rule signal in the catalog is built from these few combinators, so
the catalog stays a declarative table and each predicate can describe
itself in the catalog tool output.
"""

from __future__ import annotations

import re
from typing import Callable


class Predicate:
    """A side-effect-free check of a content string."""

    def __init__(self, fn: Callable[[str], bool], description: str):
        self._fn = fn
        self.description = description

    def __call__(self, content: str) -> bool:
        return bool(self._fn(content))

    def __or__(self, other: "Predicate") -> "Predicate":
        return any_of(self, other)

    def __and__(self, other: "Predicate") -> "Predicate":
        return all_of(self, other)

    def __repr__(self) -> str:
        return f"Predicate({self.description})"


def contains(*needles: str) -> Predicate:
    """True when any of the substrings is present."""
    if not needles:
        raise ValueError("contains() needs at least one substring")
    return Predicate(
        lambda c: any(n in c for n in needles),
        "contains " + " or ".join(repr(n) for n in needles),
    )


def contains_all(*needles: str) -> Predicate:
    """True when every substring is present."""
    if not needles:
        raise ValueError("contains_all() needs at least one substring")
    return Predicate(
        lambda c: all(n in c for n in needles),
        "contains " + " and ".join(repr(n) for n in needles),
    )


def lacks(needle: str) -> Predicate:
    return Predicate(lambda c: needle not in c, f"does not contain {needle!r}")


def matches(pattern: str, flags: int = 0) -> Predicate:
    compiled = re.compile(pattern, flags)
    return Predicate(lambda c: compiled.search(c) is not None, f"matches /{pattern}/")


def longer_than(length: int) -> Predicate:
    return Predicate(lambda c: len(c) > length, f"longer than {length} characters")


def shorter_than(length: int) -> Predicate:
    return Predicate(lambda c: len(c) < length, f"shorter than {length} characters")


def any_of(*predicates: Predicate) -> Predicate:
    return Predicate(
        lambda c: any(p(c) for p in predicates),
        "(" + " | ".join(p.description for p in predicates) + ")",
    )


def all_of(*predicates: Predicate) -> Predicate:
    return Predicate(
        lambda c: all(p(c) for p in predicates),
        "(" + " & ".join(p.description for p in predicates) + ")",
    )


def always() -> Predicate:
    return Predicate(lambda c: True, "always")


NON_EMPTY = longer_than(0)
HAS_QUESTION = contains("?")
HAS_MARKDOWN_HEADING = matches(r"^#{1,6}\s", re.MULTILINE)
HAS_CONVERSATIONAL_PHRASE = matches(r"\b(how do you|what exactly|let me explain)\b", re.IGNORECASE)
HAS_HOW_WHAT_WHY = contains_all("how", "what", "why")
HAS_KEYWORD_TOPIC = contains("AI", "SEO")

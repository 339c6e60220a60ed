"""Text primitives shared by catalog matching and product search.

``trigram_similarity`` follows PostgreSQL ``pg_trgm`` semantics so that scores
computed in Python agree with scores computed by the database when the
extension is available: every alphanumeric word is lowercased, padded with two
leading blanks and one trailing blank, and split into three-character windows;
the score is the Jaccard ratio of the two trigram sets.
"""

from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from typing import Final

_NON_ALNUM: Final = re.compile(r"[^a-z0-9]+")
_WORD: Final = re.compile(r"[^\W_]+", re.UNICODE)
_INTEGER: Final = re.compile(r"\d+")


def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def normalize_name(value: str) -> str:
    """Lowercase ``value`` and collapse every non-alphanumeric run to one space."""

    return _NON_ALNUM.sub(" ", _fold(value)).strip()


def name_prefix(normalized: str, length: int = 5) -> str:
    return normalized[:length]


def extract_numbers(value: str) -> tuple[int, ...]:
    return tuple(int(token) for token in _INTEGER.findall(value))


def names_compatible(left: str, right: str) -> bool:
    """Return whether two product names may describe the same product.

    Names without any integer token are compatible with anything; otherwise the
    integer sequences must match exactly ("drug 500" is not "drug 650").
    """

    left_numbers = extract_numbers(left)
    right_numbers = extract_numbers(right)
    if not left_numbers or not right_numbers:
        return True
    return left_numbers == right_numbers


@lru_cache(maxsize=8192)
def trigrams(value: str) -> frozenset[str]:
    grams: set[str] = set()
    for word in _WORD.findall(value.lower()):
        padded = f"  {word} "
        grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return frozenset(grams)


def trigram_similarity(left: str | None, right: str | None) -> float:
    if not left or not right:
        return 0.0
    left_grams = trigrams(left)
    right_grams = trigrams(right)
    if not left_grams or not right_grams:
        return 0.0
    shared = len(left_grams & right_grams)
    return shared / (len(left_grams) + len(right_grams) - shared)


__all__ = [
    "extract_numbers",
    "name_prefix",
    "names_compatible",
    "normalize_name",
    "trigram_similarity",
    "trigrams",
]

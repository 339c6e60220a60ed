from __future__ import annotations

import pytest

from pharmabid.domain.text import (
    extract_numbers,
    name_prefix,
    names_compatible,
    normalize_name,
    trigram_similarity,
    trigrams,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Paracetamol 500", "paracetamol 500"),
        ("  PARACETAMOL-500mg ", "paracetamol 500mg"),
        ("Amoxy/Clav (625)", "amoxy clav 625"),
        ("Café Syrup", "cafe syrup"),
        ("***", ""),
    ],
)
def test_normalize_name(raw: str, expected: str) -> None:
    assert normalize_name(raw) == expected


def test_name_prefix_uses_first_characters() -> None:
    assert name_prefix("paracetamol 500") == "parac"
    assert name_prefix("abc", 5) == "abc"


def test_trigrams_pad_each_word() -> None:
    assert trigrams("ab") == frozenset({"  a", " ab", "ab "})


def test_trigram_similarity_matches_pg_trgm() -> None:
    assert trigram_similarity("abc", "abd") == pytest.approx(1 / 3)
    assert trigram_similarity("Paracetamol 500", "paracetamol 500") == 1.0


def test_trigram_similarity_of_missing_values_is_zero() -> None:
    assert trigram_similarity(None, "abc") == 0.0
    assert trigram_similarity("", "abc") == 0.0
    assert trigram_similarity("---", "abc") == 0.0


def test_extract_numbers() -> None:
    assert extract_numbers("Drug 500 mg x10") == (500, 10)
    assert extract_numbers("no digits") == ()


@pytest.mark.parametrize(
    ("left", "right", "compatible"),
    [
        ("drug 500", "drug 500 tablet", True),
        ("drug 500", "drug 650", False),
        ("drug", "drug 650", True),
        ("drug 10 500", "drug 500 10", False),
    ],
)
def test_names_compatible(left: str, right: str, compatible: bool) -> None:  # noqa: FBT001
    assert names_compatible(left, right) is compatible

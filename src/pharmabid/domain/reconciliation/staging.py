"""In-process staging arena for one reconciliation batch."""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pharmabid.domain.model import is_usable_manufacturer
from pharmabid.domain.text import normalize_name

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .columns import InventoryRow


@dataclass(slots=True, kw_only=True)
class StagedRow:
    raw_name: str
    normalized_name: str
    manufacturer: str | None
    price: float | None
    matched_product_id: int | None = None

    @property
    def matched(self) -> bool:
        return self.matched_product_id is not None


def most_common_manufacturer(values: Iterable[str | None]) -> str | None:
    """Return the most frequent usable manufacturer, first-seen winning ties."""

    counts = Counter(value.strip() for value in values if is_usable_manufacturer(value))
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def max_price(values: Iterable[float | None]) -> float | None:
    prices = [value for value in values if value is not None and value > 0]
    return max(prices) if prices else None


@dataclass(slots=True)
class StagingBatch:
    """Rows of one upload, each carrying a "matched" flag.

    Phases read the unmatched rows grouped by normalized name and mark whole
    groups matched once a catalog product has been updated for them.
    """

    rows: list[StagedRow] = field(default_factory=list)
    batch_id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def from_rows(cls, rows: Iterable[InventoryRow]) -> StagingBatch:
        return cls(
            rows=[
                StagedRow(
                    raw_name=row.name,
                    normalized_name=normalize_name(row.name),
                    manufacturer=row.manufacturer,
                    price=row.price,
                )
                for row in rows
            ]
        )

    def __len__(self) -> int:
        return len(self.rows)

    def unmatched(self) -> list[StagedRow]:
        return [row for row in self.rows if not row.matched]

    def unmatched_groups(self) -> dict[str, list[StagedRow]]:
        groups: dict[str, list[StagedRow]] = {}
        for row in self.rows:
            if row.matched or not row.normalized_name:
                continue
            groups.setdefault(row.normalized_name, []).append(row)
        return groups

    def mark_matched(self, rows: Iterable[StagedRow], product_id: int) -> None:
        for row in rows:
            row.matched_product_id = product_id

    @property
    def matched_count(self) -> int:
        return sum(1 for row in self.rows if row.matched)

    @property
    def unmatched_count(self) -> int:
        return len(self.rows) - self.matched_count

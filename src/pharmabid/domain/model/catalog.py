"""Canonical catalog, distributor identity and staged inventory entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003
from typing import Final, TypeGuard

from pharmabid.domain.clock import utcnow
from pharmabid.domain.text import normalize_name

UNKNOWN_MANUFACTURER: Final[str] = "Unknown"


def is_usable_manufacturer(value: str | None) -> TypeGuard[str]:
    """A manufacturer is usable when it is present and not the "Unknown" placeholder."""

    if value is None:
        return False
    stripped = value.strip()
    return bool(stripped) and stripped != UNKNOWN_MANUFACTURER


@dataclass(eq=False, kw_only=True)
class Distributor:
    """Stable integer identity for an opaque distributor key."""

    key: str
    id: int | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class DistributorStock:
    """Membership of one distributor in a product's inventory set."""

    distributor_id: int
    product_id: int | None = None


@dataclass(eq=False, kw_only=True)
class CatalogProduct:
    """A canonical product keyed by its normalized name.

    The reference price only ever moves up ("highest price wins"); membership
    is a set of distributor ids with add-if-absent/remove-if-present semantics.
    """

    name: str
    normalized_name: str = ""
    manufacturer: str | None = UNKNOWN_MANUFACTURER
    price: float | None = None
    id: int | None = None
    _stock: list[DistributorStock] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self.normalized_name:
            self.normalized_name = normalize_name(self.name)

    @property
    def distributor_ids(self) -> frozenset[int]:
        return frozenset(stock.distributor_id for stock in self._stock)

    @property
    def has_inventory(self) -> bool:
        return bool(self._stock)

    def is_stocked_by(self, distributor_id: int) -> bool:
        return any(stock.distributor_id == distributor_id for stock in self._stock)

    def add_distributor(self, distributor_id: int) -> bool:
        if self.is_stocked_by(distributor_id):
            return False
        self._stock.append(DistributorStock(distributor_id=distributor_id))
        return True

    def remove_distributor(self, distributor_id: int) -> bool:
        for stock in self._stock:
            if stock.distributor_id == distributor_id:
                self._stock.remove(stock)
                return True
        return False

    def raise_price(self, candidate: float | None) -> bool:
        if candidate is None or candidate <= 0:
            return False
        if self.price is not None and candidate <= self.price:
            return False
        self.price = candidate
        return True

    def backfill_manufacturer(self, candidate: str | None) -> bool:
        if is_usable_manufacturer(self.manufacturer) or not is_usable_manufacturer(candidate):
            return False
        self.manufacturer = candidate
        return True


@dataclass(eq=False, kw_only=True)
class UnidentifiedEntry:
    """A raw inventory row that matched no catalog product for its distributor."""

    distributor_id: int
    raw_name: str
    raw_manufacturer: str = ""
    raw_price: float | None = None
    uploaded_at: datetime = field(default_factory=utcnow)
    id: int | None = None

"""Distributor-facing inventory queries and maintenance operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pharmabid.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Collection

    from pharmabid.domain.model import UnidentifiedEntry
    from pharmabid.domain.ports import UnitOfWorkFactory

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InventoryCounts:
    identified: int
    unidentified: int

    @property
    def total(self) -> int:
        return self.identified + self.unidentified


@dataclass(frozen=True, slots=True, kw_only=True)
class InventoryItem:
    name: str
    manufacturer: str | None
    price: float | None
    identified: bool
    product_id: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class InventoryPage:
    items: tuple[InventoryItem, ...]
    total: int
    page: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


@dataclass(frozen=True, slots=True, kw_only=True)
class ClearedInventory:
    memberships_removed: int
    entries_removed: int
    bids_removed: int = 0


def inventory_counts(
    distributor: str, *, unit_of_work_factory: UnitOfWorkFactory
) -> InventoryCounts:
    with unit_of_work_factory() as uow:
        distributor_id = uow.repositories.distributors.lookup(distributor)
        if distributor_id is None:
            return InventoryCounts(identified=0, unidentified=0)
        return InventoryCounts(
            identified=uow.repositories.catalog.count_stocked_by(distributor_id),
            unidentified=uow.repositories.staging.count_for_distributor(distributor_id),
        )


def inventory_products(
    distributor: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    page: int = 1,
    limit: int = 50,
) -> InventoryPage:
    """Return identified and unidentified items merged, sorted by name, paginated."""

    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive integers")

    items: list[InventoryItem] = []
    with unit_of_work_factory() as uow:
        distributor_id = uow.repositories.distributors.lookup(distributor)
        if distributor_id is not None:
            items.extend(
                InventoryItem(
                    name=product.name,
                    manufacturer=product.manufacturer,
                    price=product.price,
                    identified=True,
                    product_id=product.id,
                )
                for product in uow.repositories.catalog.stocked_by(distributor_id)
            )
            items.extend(
                InventoryItem(
                    name=entry.raw_name,
                    manufacturer=entry.raw_manufacturer or None,
                    price=entry.raw_price,
                    identified=False,
                )
                for entry in uow.repositories.staging.for_distributor(distributor_id)
            )

    items.sort(key=lambda item: item.name.lower())
    start = (page - 1) * limit
    return InventoryPage(
        items=tuple(items[start : start + limit]), total=len(items), page=page, limit=limit
    )


def unidentified_entries(
    distributor: str, *, unit_of_work_factory: UnitOfWorkFactory
) -> list[UnidentifiedEntry]:
    with unit_of_work_factory() as uow:
        distributor_id = uow.repositories.distributors.lookup(distributor)
        if distributor_id is None:
            return []
        return uow.repositories.staging.for_distributor(distributor_id)


def clear_unidentified_entries(
    distributor: str, *, unit_of_work_factory: UnitOfWorkFactory
) -> int:
    with unit_of_work_factory() as uow:
        distributor_id = uow.repositories.distributors.lookup(distributor)
        if distributor_id is None:
            return 0
        removed = uow.repositories.staging.clear_for_distributor(distributor_id)
        uow.commit()
    log.info("Cleared %s unidentified entries for distributor %s", removed, distributor)
    return removed


def clear_inventory(
    distributor: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    delete_pending_bids: bool = False,
) -> ClearedInventory:
    """Drop ``distributor`` from every catalog product and discard its staged rows."""

    with unit_of_work_factory() as uow:
        distributor_id = uow.repositories.distributors.lookup(distributor)
        if distributor_id is None:
            return ClearedInventory(memberships_removed=0, entries_removed=0)
        memberships = 0
        for product in uow.repositories.catalog.stocked_by(distributor_id):
            memberships += int(product.remove_distributor(distributor_id))
        entries = uow.repositories.staging.clear_for_distributor(distributor_id)
        bids = (
            uow.repositories.bids.delete_pending_for_wholesaler(distributor)
            if delete_pending_bids
            else 0
        )
        uow.commit()

    log.info(
        "Cleared inventory for %s: memberships=%s, entries=%s, bids=%s",
        distributor,
        memberships,
        entries,
        bids,
    )
    return ClearedInventory(
        memberships_removed=memberships, entries_removed=entries, bids_removed=bids
    )


def remove_products(
    distributor: str,
    product_ids: Collection[int],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> int:
    """Remove ``distributor`` from the listed products only."""

    if not product_ids:
        raise ValidationError("At least one product id is required")
    with unit_of_work_factory() as uow:
        distributor_id = uow.repositories.distributors.lookup(distributor)
        if distributor_id is None:
            return 0
        removed = 0
        for product in uow.repositories.catalog.get_many(product_ids).values():
            removed += int(product.remove_distributor(distributor_id))
        uow.commit()
    return removed

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pharmabid.domain.model import CatalogProduct
from pharmabid.domain.reconciliation import match_product, reconcile_inventory, search_products
from pharmabid.domain.reconciliation.search import rank_product
from tests.helpers.catalog import seed_product

if TYPE_CHECKING:
    from collections.abc import Callable

    from pharmabid.adapters.events import RecordingEventPublisher
    from pharmabid.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork

    type UowFactory = Callable[[], SqlAlchemyUnitOfWork]


@pytest.fixture
def seeded_catalog(sqlite_unit_of_work: UowFactory) -> UowFactory:
    seed_product(
        sqlite_unit_of_work,
        "Paracetamol 650",
        price=30,
        manufacturer="Zen Labs",
    )
    seed_product(
        sqlite_unit_of_work,
        "Paracetamol 500",
        price=22,
        manufacturer="Acme Pharma",
        stocked_by=["dist-a"],
    )
    seed_product(sqlite_unit_of_work, "Cetirizine 10", price=12, manufacturer="Acme Pharma")
    return sqlite_unit_of_work


@pytest.mark.parametrize(
    ("term", "rank"),
    [
        ("paracetamol 500", 1),
        ("paracetamol", 2),
        ("acme pharma", 4),
    ],
)
def test_rank_product_tiers(term: str, rank: int) -> None:
    product = CatalogProduct(name="Paracetamol 500", manufacturer="Acme Pharma")

    ranked = rank_product(product, term)

    assert ranked is not None
    assert ranked[0] == rank


def test_rank_product_rejects_unrelated_terms() -> None:
    assert rank_product(CatalogProduct(name="Paracetamol 500"), "ointment") is None


def test_search_prefers_stocked_products_within_a_tier(seeded_catalog: UowFactory) -> None:
    hits = search_products("paracetamol", unit_of_work_factory=seeded_catalog)

    assert [(hit.name, hit.rank, hit.has_inventory) for hit in hits] == [
        ("Paracetamol 500", 2, True),
        ("Paracetamol 650", 2, False),
    ]


def test_search_by_manufacturer(seeded_catalog: UowFactory) -> None:
    hits = search_products("Acme Pharma", unit_of_work_factory=seeded_catalog)

    assert {hit.name for hit in hits} == {"Paracetamol 500", "Cetirizine 10"}
    assert {hit.rank for hit in hits} == {4}


def test_search_includes_unidentified_entries(
    seeded_catalog: UowFactory, publisher: RecordingEventPublisher
) -> None:
    reconcile_inventory(
        [{"name": "Mystery Tonic", "price": "5", "manufacturer": "Herbal Co"}],
        distributor="dist-b",
        unit_of_work_factory=seeded_catalog,
        publisher=publisher,
    )

    hits = search_products("mystery tonic", unit_of_work_factory=seeded_catalog)

    [hit] = hits
    assert hit.identified is False
    assert hit.rank == 9
    assert hit.manufacturer == "Herbal Co"
    assert hit.price == 5
    assert hit.product_id is None


@pytest.mark.parametrize("term", ["", "   ", "zzzzqqq"])
def test_search_falls_back_to_catalog_sample(seeded_catalog: UowFactory, term: str) -> None:
    hits = search_products(term, unit_of_work_factory=seeded_catalog)

    assert {hit.rank for hit in hits} == {8}
    assert hits[0].name == "Paracetamol 500"
    assert len(hits) == 3


def test_match_product_requires_compatible_strengths(seeded_catalog: UowFactory) -> None:
    matched = match_product("Paracetamol 500 Tablet", unit_of_work_factory=seeded_catalog)

    assert matched is not None
    assert matched.name == "Paracetamol 500"
    assert match_product("paracetamol 1000", unit_of_work_factory=seeded_catalog) is None


def test_match_product_ignores_blank_names(seeded_catalog: UowFactory) -> None:
    assert match_product("  ", unit_of_work_factory=seeded_catalog) is None

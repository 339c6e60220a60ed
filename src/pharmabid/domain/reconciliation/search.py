"""Tiered product search and single-name product matching."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pharmabid.config.marketplace import SearchConfig
from pharmabid.domain.text import names_compatible, trigram_similarity

if TYPE_CHECKING:
    from pharmabid.domain.model import CatalogProduct
    from pharmabid.domain.ports import UnitOfWorkFactory

FALLBACK_RANK = 8
UNIDENTIFIED_RANK = 9


@dataclass(frozen=True, slots=True, kw_only=True)
class ProductSearchHit:
    name: str
    manufacturer: str | None
    price: float | None
    has_inventory: bool
    identified: bool
    rank: int
    similarity: float
    product_id: int | None = None


def rank_product(product: CatalogProduct, term: str) -> tuple[int, float] | None:
    """Return ``(rank, similarity)`` for ``product`` against a lowercased term.

    Lower ranks are better: exact name, name prefix, name substring, then the
    same three tiers over the manufacturer, then plain fuzzy name similarity.
    """

    name = product.name.lower()
    manufacturer = (product.manufacturer or "").lower()
    similarity = trigram_similarity(name, term)
    manufacturer_similarity = trigram_similarity(manufacturer, term)

    if name == term:
        rank = 1
    elif name.startswith(term) and similarity > 0.4:
        rank = 2
    elif term in name and similarity > 0.3:
        rank = 3
    elif manufacturer and manufacturer == term:
        rank = 4
    elif manufacturer.startswith(term) and manufacturer_similarity > 0.4:
        rank = 5
    elif term in manufacturer and manufacturer_similarity > 0.3:
        rank = 6
    elif similarity > 0.2:
        rank = 7
    else:
        return None
    return rank, similarity


def _catalog_hit(product: CatalogProduct, rank: int, similarity: float) -> ProductSearchHit:
    return ProductSearchHit(
        product_id=product.id,
        name=product.name,
        manufacturer=product.manufacturer,
        price=product.price,
        has_inventory=product.has_inventory,
        identified=True,
        rank=rank,
        similarity=similarity,
    )


def search_products(
    term: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    config: SearchConfig | None = None,
) -> list[ProductSearchHit]:
    cfg = config or SearchConfig()
    needle = term.strip().lower()

    with unit_of_work_factory() as uow:
        if not needle:
            return [
                _catalog_hit(product, FALLBACK_RANK, 0.0)
                for product in uow.repositories.catalog.sample(limit=cfg.fallback_limit)
            ]

        hits: list[ProductSearchHit] = []
        for product in uow.repositories.catalog.search_candidates(needle, min_similarity=0.2):
            ranked = rank_product(product, needle)
            if ranked is not None:
                hits.append(_catalog_hit(product, *ranked))
        hits.sort(key=lambda hit: (hit.rank, not hit.has_inventory, -hit.similarity))
        hits = hits[: cfg.candidate_limit]

        seen: set[str] = set()
        for entry, similarity in uow.repositories.staging.search_candidates(
            needle, min_similarity=0.3, limit=cfg.unidentified_limit
        ):
            if entry.raw_name in seen:
                continue
            seen.add(entry.raw_name)
            hits.append(
                ProductSearchHit(
                    name=entry.raw_name,
                    manufacturer=entry.raw_manufacturer or None,
                    price=entry.raw_price,
                    has_inventory=True,
                    identified=False,
                    rank=UNIDENTIFIED_RANK,
                    similarity=similarity,
                )
            )

        if not hits:
            return [
                _catalog_hit(product, FALLBACK_RANK, 0.0)
                for product in uow.repositories.catalog.sample(limit=cfg.fallback_limit)
            ]

    hits.sort(key=lambda hit: (hit.rank, -hit.similarity))
    return hits[: cfg.result_limit]


def match_product(
    name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    config: SearchConfig | None = None,
) -> CatalogProduct | None:
    """Return the most similar catalog product whose integer tokens agree with ``name``."""

    cfg = config or SearchConfig()
    needle = name.strip().lower()
    if not needle:
        return None
    with unit_of_work_factory() as uow:
        candidates = uow.repositories.catalog.similar_to(
            needle, threshold=cfg.match_threshold, limit=cfg.candidate_limit
        )
    for product, _similarity in candidates:
        if names_compatible(product.name, needle):
            return product
    return None

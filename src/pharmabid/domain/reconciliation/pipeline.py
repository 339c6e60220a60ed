"""Phase-based pipeline that reconciles a staged batch against the catalog."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from pharmabid.config.marketplace import ReconciliationConfig
from pharmabid.domain.clock import Clock, utcnow
from pharmabid.domain.events import DomainEvent, EventType, UploadProgress
from pharmabid.domain.model import UNKNOWN_MANUFACTURER, CatalogProduct, UnidentifiedEntry
from pharmabid.domain.text import name_prefix, normalize_name, trigram_similarity

from .staging import StagedRow, StagingBatch, max_price, most_common_manufacturer

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from pharmabid.domain.ports import EventPublisher, MarketplaceUnitOfWork

log = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadProgressReporter:
    """Publishes ``upload-progress`` events for one distributor upload."""

    publisher: EventPublisher
    distributor: str
    total_rows: int

    def report(
        self,
        percentage: int,
        message: str,
        *,
        batch: StagingBatch,
        processed_rows: int | None = None,
    ) -> None:
        self.publisher.publish(
            DomainEvent(
                EventType.UPLOAD_PROGRESS,
                UploadProgress(
                    distributor=self.distributor,
                    total_rows=self.total_rows,
                    processed_rows=self.total_rows if processed_rows is None else processed_rows,
                    matched_count=batch.matched_count,
                    not_found_count=batch.unmatched_count,
                    percentage=percentage,
                    status="processing",
                    message=message,
                ),
            )
        )


@dataclass(slots=True, kw_only=True)
class ReconciliationContext:
    uow: MarketplaceUnitOfWork
    distributor_id: int
    progress: UploadProgressReporter
    config: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    clock: Clock = utcnow
    promoted_names: list[str] = field(default_factory=list)


class ReconciliationPhase(Protocol):
    """Contract implemented by each reconciliation phase."""

    name: str

    def run(self, batch: StagingBatch, *, context: ReconciliationContext) -> None: ...


@dataclass(slots=True)
class ReconciliationPipeline:
    """Run the configured phases in order against one batch."""

    phases: Sequence[ReconciliationPhase] = field(default_factory=tuple)

    def run(self, batch: StagingBatch, *, context: ReconciliationContext) -> StagingBatch:
        for phase in self.phases:
            log.debug("Running reconciliation phase %s on batch %s", phase.name, batch.batch_id)
            phase.run(batch, context=context)
        return batch


def apply_inventory_update(
    product: CatalogProduct, rows: Iterable[StagedRow], distributor_id: int
) -> None:
    """Record ``distributor_id`` as stocking ``product`` and fold in the rows' data."""

    materialized = list(rows)
    product.add_distributor(distributor_id)
    product.raise_price(max_price(row.price for row in materialized))
    product.backfill_manufacturer(
        most_common_manufacturer(row.manufacturer for row in materialized)
    )


def _slices[T](items: Sequence[T], size: int) -> Iterable[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ExactMatchPhase:
    name = "exact-match"

    def run(self, batch: StagingBatch, *, context: ReconciliationContext) -> None:
        context.progress.report(25, "Performing exact matches...", batch=batch, processed_rows=0)
        groups = batch.unmatched_groups()
        names = list(groups)
        chunk_size = context.config.chunk_size
        total_chunks = max(1, -(-len(names) // chunk_size))
        catalog = context.uow.repositories.catalog

        for index, chunk in enumerate(_slices(names, chunk_size), start=1):
            for normalized, product in catalog.find_by_normalized_names(chunk).items():
                rows = groups[normalized]
                apply_inventory_update(product, rows, context.distributor_id)
                batch.mark_matched(rows, _product_id(product))
            if total_chunks > context.config.progress_chunk_floor:
                processed = sum(len(groups[name]) for name in names[: index * chunk_size])
                context.progress.report(
                    25 + (25 * index) // total_chunks,
                    f"Processed chunk {index}/{total_chunks}",
                    batch=batch,
                    processed_rows=processed,
                )
        log.info(
            "Exact pass matched %s of %s rows for distributor %s",
            batch.matched_count,
            len(batch),
            context.distributor_id,
        )


class FuzzyMatchPhase:
    name = "fuzzy-match"

    def run(self, batch: StagingBatch, *, context: ReconciliationContext) -> None:
        context.progress.report(50, "Performing fuzzy matches...", batch=batch)
        groups = batch.unmatched_groups()
        if not groups:
            return
        length = context.config.prefix_length
        threshold = context.config.fuzzy_threshold
        prefixes = sorted({name_prefix(name, length) for name in groups})

        candidates: dict[str, list[CatalogProduct]] = {}
        catalog = context.uow.repositories.catalog
        for chunk in _slices(prefixes, context.config.chunk_size):
            for product in catalog.find_by_prefixes(chunk, length=length):
                candidates.setdefault(name_prefix(product.normalized_name, length), []).append(
                    product
                )

        matched_before = batch.matched_count
        for normalized, rows in groups.items():
            best: CatalogProduct | None = None
            best_score = threshold
            for product in candidates.get(name_prefix(normalized, length), ()):
                score = trigram_similarity(product.normalized_name, normalized)
                if score > best_score:
                    best, best_score = product, score
            if best is None:
                continue
            apply_inventory_update(best, rows, context.distributor_id)
            batch.mark_matched(rows, _product_id(best))
        log.info("Fuzzy pass matched %s additional rows", batch.matched_count - matched_before)


class StageUnmatchedPhase:
    name = "stage-unmatched"

    def run(self, batch: StagingBatch, *, context: ReconciliationContext) -> None:
        context.progress.report(75, "Finalizing upload...", batch=batch)
        uploaded_at = context.clock()
        entries = [
            UnidentifiedEntry(
                distributor_id=context.distributor_id,
                raw_name=row.raw_name,
                raw_manufacturer=row.manufacturer or "",
                raw_price=row.price,
                uploaded_at=uploaded_at,
            )
            for row in batch.unmatched()
        ]
        context.uow.repositories.staging.replace_for_distributor(context.distributor_id, entries)


class PromotionPhase:
    """Promote names staged as unmatched by more than one distributor."""

    name = "promotion"

    def run(self, batch: StagingBatch, *, context: ReconciliationContext) -> None:
        _ = batch
        staging = context.uow.repositories.staging
        catalog = context.uow.repositories.catalog
        names = [
            name
            for name in staging.names_staged_by_multiple_distributors()
            if normalize_name(name)
        ]
        if not names:
            return

        grouped: dict[str, list[UnidentifiedEntry]] = {}
        for entry in staging.entries_for_names(names):
            grouped.setdefault(entry.raw_name, []).append(entry)

        for name in names:
            entries = grouped.get(name, [])
            distributor_ids = sorted({entry.distributor_id for entry in entries})
            candidate = CatalogProduct(
                name=name,
                manufacturer=most_common_manufacturer(e.raw_manufacturer for e in entries)
                or UNKNOWN_MANUFACTURER,
                price=max_price(entry.raw_price for entry in entries),
            )
            for distributor_id in distributor_ids:
                candidate.add_distributor(distributor_id)
            stored, created = catalog.add_if_absent(candidate)
            if not created:
                for distributor_id in distributor_ids:
                    stored.add_distributor(distributor_id)
            log.info(
                "Promoted %r into catalog (created=%s, distributors=%s)",
                name,
                created,
                distributor_ids,
            )
            context.promoted_names.append(name)

        staging.delete_names(names)


def _product_id(product: CatalogProduct) -> int:
    if product.id is None:
        raise ValueError(f"Catalog product {product.name!r} has not been persisted")
    return product.id


DEFAULT_PHASES: tuple[ReconciliationPhase, ...] = (
    ExactMatchPhase(),
    FuzzyMatchPhase(),
    StageUnmatchedPhase(),
    PromotionPhase(),
)

"""Entry point that reconciles one distributor upload end to end."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pharmabid.config.logging import timed
from pharmabid.config.marketplace import ReconciliationConfig
from pharmabid.domain.clock import Clock, utcnow
from pharmabid.domain.errors import ValidationError
from pharmabid.domain.events import DomainEvent, EventType, UploadFailure, UploadProgress

from .columns import ColumnMapping, extract_rows, headers_of, resolve_columns
from .pipeline import (
    DEFAULT_PHASES,
    ReconciliationContext,
    ReconciliationPipeline,
    UploadProgressReporter,
)
from .staging import StagingBatch

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from pharmabid.domain.ports import EventPublisher, UnitOfWorkFactory

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciliationResult:
    distributor: str
    total_rows: int
    matched_count: int
    unmatched_count: int
    promoted_names: tuple[str, ...]
    column_mapping: ColumnMapping
    elapsed_ms: float


def reconcile_inventory(
    records: Iterable[Mapping[str, object]],
    *,
    distributor: str,
    unit_of_work_factory: UnitOfWorkFactory,
    publisher: EventPublisher,
    headers: Sequence[str] | None = None,
    config: ReconciliationConfig | None = None,
    pipeline: ReconciliationPipeline | None = None,
    clock: Clock = utcnow,
) -> ReconciliationResult:
    """Reconcile ``records`` uploaded by ``distributor`` against the catalog.

    Column resolution happens before the store is touched, so a sheet without a
    recognisable product name column fails without side effects. Everything
    after that runs in a single unit of work: an exception anywhere rolls the
    whole upload back and is reported through an ``upload-error`` event before
    being re-raised.
    """

    started = time.perf_counter()
    effective_config = config or ReconciliationConfig()
    materialized = list(records)

    try:
        if not distributor or not distributor.strip():
            raise ValidationError("A distributor identifier is required")
        mapping = resolve_columns(headers if headers is not None else headers_of(materialized))
    except ValidationError as exc:
        _publish_failure(publisher, distributor, exc)
        raise

    batch = StagingBatch.from_rows(extract_rows(materialized, mapping))
    log.info(
        "Reconciling %s rows (%s raw) for distributor %s with mapping %s",
        len(batch),
        len(materialized),
        distributor,
        mapping.as_dict(),
    )
    progress = UploadProgressReporter(publisher, distributor, len(batch))
    active_pipeline = pipeline or ReconciliationPipeline(phases=DEFAULT_PHASES)

    try:
        with timed(log, f"reconciliation for {distributor}", level=logging.INFO):
            with unit_of_work_factory() as uow:
                context = ReconciliationContext(
                    uow=uow,
                    distributor_id=uow.repositories.distributors.resolve(distributor),
                    progress=progress,
                    config=effective_config,
                    clock=clock,
                )
                active_pipeline.run(batch, context=context)
                uow.commit()
    except Exception as exc:
        log.exception("Reconciliation failed for distributor %s", distributor)
        _publish_failure(publisher, distributor, exc)
        raise

    result = ReconciliationResult(
        distributor=distributor,
        total_rows=len(batch),
        matched_count=batch.matched_count,
        unmatched_count=batch.unmatched_count,
        promoted_names=tuple(context.promoted_names),
        column_mapping=mapping,
        elapsed_ms=(time.perf_counter() - started) * 1000,
    )
    publisher.publish(
        DomainEvent(
            EventType.UPLOAD_COMPLETE,
            UploadProgress(
                distributor=distributor,
                total_rows=result.total_rows,
                processed_rows=result.total_rows,
                matched_count=result.matched_count,
                not_found_count=result.unmatched_count,
                percentage=100,
                status="completed",
                message=(
                    f"Upload completed! {result.matched_count} products matched, "
                    f"{result.unmatched_count} not found."
                ),
            ),
        )
    )
    return result


def _publish_failure(publisher: EventPublisher, distributor: str, exc: BaseException) -> None:
    publisher.publish(
        DomainEvent(EventType.UPLOAD_ERROR, UploadFailure(distributor=distributor, error=str(exc)))
    )

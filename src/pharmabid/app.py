"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pharmabid.adapters.csv_reader import read_inventory_csv
from pharmabid.adapters.events import FanOutEventPublisher, LoggingEventPublisher
from pharmabid.adapters.scheduler import ExpiryScheduler
from pharmabid.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from pharmabid.adapters.webhook import WebhookEventPublisher
from pharmabid.config import get_marketplace_config, get_webhook_config
from pharmabid.domain.auction.expiry import ExpirySweep, SweepResult
from pharmabid.domain.reconciliation import (
    InventoryCounts,
    ProductSearchHit,
    ReconciliationResult,
    inventory_counts,
    match_product,
    reconcile_inventory,
    search_products,
)

if TYPE_CHECKING:
    from pathlib import Path

    from pharmabid.config import MarketplaceConfig
    from pharmabid.domain.model import CatalogProduct
    from pharmabid.domain.ports import EventPublisher, UnitOfWorkFactory


log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_event_publisher() -> EventPublisher:
    """Log every event and forward it to the webhook when one is configured."""

    webhook = get_webhook_config()
    publishers: list[EventPublisher] = [LoggingEventPublisher()]
    if webhook.enabled:
        publishers.append(WebhookEventPublisher(config=webhook))
    return FanOutEventPublisher(publishers=publishers)


def upload_inventory_file(
    path: Path,
    *,
    distributor: str,
    publisher: EventPublisher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: MarketplaceConfig | None = None,
) -> ReconciliationResult:
    """Reconcile a distributor's CSV export against the catalog."""

    _ensure_started()
    effective_config = config or get_marketplace_config()
    headers, records = read_inventory_csv(path)
    log.info("Starting upload of %s for distributor %s", path, distributor)

    result = reconcile_inventory(
        records,
        distributor=distributor,
        headers=headers,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork,
        publisher=publisher or build_event_publisher(),
        config=effective_config.reconciliation,
    )

    log.info(
        f"Finished upload for {distributor}: matched={result.matched_count}, "
        f"unmatched={result.unmatched_count}, promoted={len(result.promoted_names)}"
    )
    return result


def _build_sweep(
    unit_of_work_factory: UnitOfWorkFactory | None, config: MarketplaceConfig | None
) -> tuple[ExpirySweep, MarketplaceConfig]:
    effective_config = config or get_marketplace_config()
    sweep = ExpirySweep(
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork,
        config=effective_config.expiry,
    )
    return sweep, effective_config


def run_expiry_sweep(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: MarketplaceConfig | None = None,
) -> SweepResult:
    """Run one expiry pass over the ACTIVE bid requests."""

    _ensure_started()
    sweep, _ = _build_sweep(unit_of_work_factory, config)
    return sweep.run()


def build_expiry_scheduler(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: MarketplaceConfig | None = None,
) -> ExpiryScheduler:
    """Return a scheduler that sweeps on the configured interval (not yet started)."""

    _ensure_started()
    sweep, effective_config = _build_sweep(unit_of_work_factory, config)
    return ExpiryScheduler(sweep, interval=effective_config.expiry.sweep_interval)


def search_catalog(
    term: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: MarketplaceConfig | None = None,
) -> list[ProductSearchHit]:
    _ensure_started()
    effective_config = config or get_marketplace_config()
    return search_products(
        term,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork,
        config=effective_config.search,
    )


def match_catalog_product(
    name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: MarketplaceConfig | None = None,
) -> CatalogProduct | None:
    _ensure_started()
    effective_config = config or get_marketplace_config()
    return match_product(
        name,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork,
        config=effective_config.search,
    )


def distributor_inventory_counts(
    distributor: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> InventoryCounts:
    _ensure_started()
    return inventory_counts(
        distributor, unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork
    )

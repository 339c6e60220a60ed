"""Runs the expiry sweep on a background interval."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from pharmabid.domain.auction.expiry import ExpirySweep, SweepResult

log = logging.getLogger(__name__)

SWEEP_JOB_ID = "expiry_sweep"


class ExpiryScheduler:
    """Background scheduler owning a single interval job for the sweep.

    ``max_instances=1`` keeps a slow sweep from overlapping the next tick.
    """

    def __init__(self, sweep: ExpirySweep, *, interval: timedelta = timedelta(minutes=5)) -> None:
        self.sweep = sweep
        self.interval = interval
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self._scheduler is not None:
            log.warning("Expiry scheduler already running")
            return

        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            self.trigger_now,
            IntervalTrigger(seconds=self.interval.total_seconds()),
            id=SWEEP_JOB_ID,
            name="Expire idle bid requests",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        log.info("Expiry scheduler started (every %s)", self.interval)

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        log.info("Expiry scheduler stopped")

    def trigger_now(self) -> SweepResult:
        result = self.sweep.run()
        if result.expired or result.failed:
            log.info(
                "Sweep examined %d requests: %d expired, %d failed",
                result.examined,
                len(result.expired),
                len(result.failed),
            )
        return result

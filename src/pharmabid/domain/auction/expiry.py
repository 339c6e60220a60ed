"""Expiry of stale bid requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pharmabid.config.marketplace import ExpiryConfig
from pharmabid.domain.clock import Clock, utcnow

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from pharmabid.domain.ports import UnitOfWorkFactory

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SweepResult:
    examined: int
    expired: tuple[uuid.UUID, ...]
    failed: tuple[uuid.UUID, ...]


@dataclass(slots=True)
class ExpirySweep:
    """Move idle ACTIVE requests to INACTIVE and reject their PENDING bids.

    A request qualifies once it is older than ``request_max_age`` and either
    has no PENDING bid or its newest PENDING bid is older than
    ``bid_quiet_period``. Every request is expired in its own unit of work; a
    failure is logged and the sweep moves on.
    """

    unit_of_work_factory: UnitOfWorkFactory
    config: ExpiryConfig = field(default_factory=ExpiryConfig)
    clock: Clock = utcnow

    def eligible(self, now: datetime) -> list[uuid.UUID]:
        quiet_since = now - self.config.bid_quiet_period
        eligible: list[uuid.UUID] = []
        with self.unit_of_work_factory() as uow:
            candidates = uow.repositories.bid_requests.list_expiry_candidates(
                created_before=now - self.config.request_max_age
            )
            for bid_request in candidates:
                latest = uow.repositories.bids.latest_pending_created_at(bid_request.id)
                if latest is None or latest < quiet_since:
                    eligible.append(bid_request.id)
        return eligible

    def expire(self, bid_request_id: uuid.UUID, now: datetime) -> bool:
        with self.unit_of_work_factory() as uow:
            bid_request = uow.repositories.bid_requests.get_for_update(bid_request_id)
            if bid_request is None or not bid_request.is_active:
                return False
            latest = uow.repositories.bids.latest_pending_created_at(bid_request_id)
            if latest is not None and latest >= now - self.config.bid_quiet_period:
                return False
            bid_request.deactivate(now)
            rejected = 0
            for bid in uow.repositories.bids.for_request(bid_request_id):
                if bid.is_pending:
                    bid.reject(now)
                    rejected += 1
            uow.commit()
        log.info("Expired bid request %s and rejected %s pending bids", bid_request_id, rejected)
        return True

    def run(self) -> SweepResult:
        now = self.clock()
        candidates = self.eligible(now)
        expired: list[uuid.UUID] = []
        failed: list[uuid.UUID] = []
        for bid_request_id in candidates:
            try:
                if self.expire(bid_request_id, now):
                    expired.append(bid_request_id)
            except Exception:
                log.exception("Failed to expire bid request %s", bid_request_id)
                failed.append(bid_request_id)
        log.info(
            "Expiry sweep finished: %s candidates, %s expired, %s failed",
            len(candidates),
            len(expired),
            len(failed),
        )
        return SweepResult(examined=len(candidates), expired=tuple(expired), failed=tuple(failed))

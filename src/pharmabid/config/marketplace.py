"""Tunables for reconciliation, auctions and the expiry sweep."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Final

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_CHUNK_SIZE: Final[int] = 2000
DEFAULT_FUZZY_THRESHOLD: Final[float] = 0.45
DEFAULT_SEARCH_THRESHOLD: Final[float] = 0.4
DEFAULT_PREFIX_LENGTH: Final[int] = 5


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciliationConfig:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    prefix_length: int = DEFAULT_PREFIX_LENGTH
    # per-chunk progress is only emitted for batches with more chunks than this
    progress_chunk_floor: int = 5


@dataclass(frozen=True, slots=True, kw_only=True)
class SearchConfig:
    match_threshold: float = DEFAULT_SEARCH_THRESHOLD
    candidate_limit: int = 25
    unidentified_limit: int = 10
    result_limit: int = 20
    fallback_limit: int = 10


@dataclass(frozen=True, slots=True, kw_only=True)
class AuctionConfig:
    minimum_increment: float = 0.1
    bucket_window: timedelta = timedelta(hours=1)


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpiryConfig:
    request_max_age: timedelta = timedelta(hours=1)
    bid_quiet_period: timedelta = timedelta(minutes=30)
    sweep_interval: timedelta = timedelta(minutes=5)


@dataclass(frozen=True, slots=True, kw_only=True)
class MarketplaceConfig:
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    auction: AuctionConfig = field(default_factory=AuctionConfig)
    expiry: ExpiryConfig = field(default_factory=ExpiryConfig)


def _positive(name: str, value: float) -> float:
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def get_marketplace_config() -> MarketplaceConfig:
    """Build the marketplace configuration, honouring ``PHARMABID_*`` overrides."""

    chunk_size = env_int("PHARMABID_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)
    fuzzy = env_float("PHARMABID_FUZZY_THRESHOLD", DEFAULT_FUZZY_THRESHOLD)
    search = env_float("PHARMABID_SEARCH_THRESHOLD", DEFAULT_SEARCH_THRESHOLD)
    sweep_minutes = env_float("PHARMABID_SWEEP_INTERVAL_MINUTES", 5.0)
    max_age_minutes = env_float("PHARMABID_REQUEST_MAX_AGE_MINUTES", 60.0)
    quiet_minutes = env_float("PHARMABID_BID_QUIET_MINUTES", 30.0)
    bucket_minutes = env_float("PHARMABID_BUCKET_WINDOW_MINUTES", 60.0)

    for name, value in (
        ("PHARMABID_FUZZY_THRESHOLD", fuzzy),
        ("PHARMABID_SEARCH_THRESHOLD", search),
    ):
        if not 0 < value < 1:
            raise ConfigurationError(f"{name} must be between 0 and 1, got {value}")

    return MarketplaceConfig(
        reconciliation=ReconciliationConfig(
            chunk_size=int(_positive("PHARMABID_CHUNK_SIZE", chunk_size)),
            fuzzy_threshold=fuzzy,
        ),
        search=SearchConfig(match_threshold=search),
        auction=AuctionConfig(
            bucket_window=timedelta(
                minutes=_positive("PHARMABID_BUCKET_WINDOW_MINUTES", bucket_minutes)
            )
        ),
        expiry=ExpiryConfig(
            request_max_age=timedelta(
                minutes=_positive("PHARMABID_REQUEST_MAX_AGE_MINUTES", max_age_minutes)
            ),
            bid_quiet_period=timedelta(
                minutes=_positive("PHARMABID_BID_QUIET_MINUTES", quiet_minutes)
            ),
            sweep_interval=timedelta(
                minutes=_positive("PHARMABID_SWEEP_INTERVAL_MINUTES", sweep_minutes)
            ),
        ),
    )

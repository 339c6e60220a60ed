"""Domain error taxonomy shared by reconciliation and auction services."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class MarketplaceError(Exception):
    """Base class for every failure the marketplace core surfaces to callers."""


class ValidationError(MarketplaceError):
    """Malformed input detected before any state was touched."""

    def __init__(self, message: str, *, details: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.details = tuple(details)


class NotFoundError(MarketplaceError):
    """A referenced product, bid, bid request or distributor does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(f"{entity} with ID {identifier} not found")
        self.entity = entity
        self.identifier = identifier


class ConflictError(MarketplaceError):
    """The request is well-formed but contradicts current marketplace state."""

    def __init__(self, message: str, *, minimum_discount: float | None = None) -> None:
        super().__init__(message)
        self.minimum_discount = minimum_discount


class ConsistencyError(MarketplaceError):
    """The store rejected a write, typically through a constraint violation."""


class TransientInfraError(MarketplaceError):
    """The store was unavailable or a transaction timed out; retrying may succeed."""


__all__ = [
    "ConflictError",
    "ConsistencyError",
    "MarketplaceError",
    "NotFoundError",
    "TransientInfraError",
    "ValidationError",
]

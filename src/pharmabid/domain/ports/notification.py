"""Publish-side port of the notification sink."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pharmabid.domain.events import DomainEvent


@runtime_checkable
class EventPublisher(Protocol):
    """Accepts domain events; delivery and fan-out are the implementation's concern."""

    def publish(self, event: DomainEvent) -> None: ...

"""In-process event publishers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pharmabid.domain.events import DomainEvent, EventType
    from pharmabid.domain.ports.notification import EventPublisher

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordingEventPublisher:
    """Keeps every published event in memory, in publication order."""

    events: list[DomainEvent] = field(default_factory=list)

    def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[DomainEvent]:
        return [event for event in self.events if event.type == event_type]

    def clear(self) -> None:
        self.events.clear()


@dataclass(slots=True)
class LoggingEventPublisher:
    level: int = logging.INFO

    def publish(self, event: DomainEvent) -> None:
        log.log(self.level, "Event %s: %s", event.type.value, event.to_dict()["payload"])


@dataclass(slots=True)
class FanOutEventPublisher:
    """Forwards each event to every wrapped publisher.

    A failing publisher is logged and skipped so the remaining ones still
    receive the event.
    """

    publishers: Sequence[EventPublisher]

    def publish(self, event: DomainEvent) -> None:
        for publisher in self.publishers:
            try:
                publisher.publish(event)
            except Exception:
                log.exception(
                    "Publisher %s failed to handle %s", type(publisher).__name__, event.type.value
                )


if TYPE_CHECKING:
    _recording_check: EventPublisher = RecordingEventPublisher()
    _logging_check: EventPublisher = LoggingEventPublisher()
    _fan_out_check: EventPublisher = FanOutEventPublisher(publishers=())

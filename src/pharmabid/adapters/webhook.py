"""Delivers domain events to an HTTP endpoint."""

from __future__ import annotations

import asyncio
import atexit
import queue
import threading
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from pharmabid.adapters.http_resilience import ResilientClient
from pharmabid.config.webhook import WebhookConfig, get_webhook_config

if TYPE_CHECKING:
    from collections.abc import Callable

    from pharmabid.config.http_resilience import ResilienceConfig
    from pharmabid.domain.events import DomainEvent
    from pharmabid.domain.ports.notification import EventPublisher

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class WebhookDeliveryError(RuntimeError):
    """Raised when the endpoint keeps rejecting an event after retries."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class WebhookEventPublisher:
    """POSTs each event as JSON to the configured URL from a background thread.

    ``publish`` only enqueues, so callers holding a database transaction are
    never held up by the endpoint. The delivery thread owns its event loop and
    one ``ResilientClient``; it starts on the first event and is drained on
    ``close()`` (also registered with ``atexit``). Failures that survive the
    retry policy are logged and dropped.
    """

    config: WebhookConfig = field(default_factory=get_webhook_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _queue: queue.Queue[DomainEvent | None] = field(default_factory=queue.Queue, init=False)
    _worker: threading.Thread | None = field(default=None, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def publish(self, event: DomainEvent) -> None:
        if not self.config.enabled:
            return
        self._ensure_worker()
        self._queue.put(event)

    def flush(self) -> None:
        """Block until every queued event has been attempted."""

        if self._worker is not None:
            self._queue.join()

    def close(self, timeout: float | None = 30.0) -> None:
        with self._lock:
            worker, self._worker = self._worker, None
        if worker is None:
            return
        self._queue.put(None)
        worker.join(timeout)
        if worker.is_alive():
            log.warning("Webhook worker did not finish within %ss", timeout)

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is not None:
                return
            worker = threading.Thread(
                target=self._run, name="pharmabid-webhook", daemon=True
            )
            worker.start()
            self._worker = worker
        atexit.register(self.close)

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        client = self.client_factory(self.config.resilience)
        try:
            while True:
                event = self._queue.get()
                try:
                    if event is None:
                        return
                    loop.run_until_complete(self._deliver_logged(client, event))
                except Exception:
                    log.exception("Webhook worker failed on %r", event)
                finally:
                    self._queue.task_done()
        finally:
            loop.run_until_complete(client.aclose())
            loop.close()

    async def _deliver_logged(self, client: ResilientClient, event: DomainEvent) -> None:
        try:
            await self._post(client, event)
        except (httpx.HTTPError, WebhookDeliveryError) as exc:
            log.error(f"Webhook delivery of {event.type.value} failed: {exc}")

    async def deliver(self, event: DomainEvent) -> httpx.Response:
        """Send one event on a short-lived client, raising on failure."""

        async with self.client_factory(self.config.resilience) as client:
            return await self._post(client, event)

    async def _post(self, client: ResilientClient, event: DomainEvent) -> httpx.Response:
        url = self.config.url
        if url is None:
            raise WebhookDeliveryError("Webhook URL is not configured")
        response = await client.post(url, json=event.to_dict())
        if response.is_error:
            raise WebhookDeliveryError(
                f"Endpoint answered {response.status_code}", status_code=response.status_code
            )
        log.debug(f"Delivered {event.type.value} to webhook ({response.status_code})")
        return response


if TYPE_CHECKING:
    _webhook_check: EventPublisher = WebhookEventPublisher()

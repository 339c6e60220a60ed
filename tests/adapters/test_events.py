from __future__ import annotations

import asyncio
import json
import logging
import threading

import httpx
import pytest

from pharmabid.adapters.events import (
    FanOutEventPublisher,
    LoggingEventPublisher,
    RecordingEventPublisher,
)
from pharmabid.adapters.http_resilience import ResilientClient
from pharmabid.adapters.webhook import WebhookDeliveryError, WebhookEventPublisher
from pharmabid.config.http_resilience import ResilienceConfig, RetryPolicy
from pharmabid.config.webhook import WebhookConfig
from pharmabid.domain.events import DomainEvent, EventType, UploadFailure


def _event(distributor: str = "dist-a") -> DomainEvent:
    return DomainEvent(
        EventType.UPLOAD_ERROR, UploadFailure(distributor=distributor, error="bad header")
    )


class _BrokenPublisher:
    def publish(self, event: DomainEvent) -> None:
        raise RuntimeError("sink offline")


def test_recording_publisher_filters_by_type() -> None:
    publisher = RecordingEventPublisher()
    publisher.publish(_event())

    assert publisher.of_type(EventType.UPLOAD_ERROR) == publisher.events
    assert publisher.of_type(EventType.ORDER_CREATED) == []

    publisher.clear()
    assert publisher.events == []


def test_fan_out_keeps_delivering_after_a_failure(caplog: pytest.LogCaptureFixture) -> None:
    recorder = RecordingEventPublisher()
    fan_out = FanOutEventPublisher([_BrokenPublisher(), recorder])

    with caplog.at_level(logging.ERROR):
        fan_out.publish(_event())

    assert len(recorder.events) == 1
    assert "_BrokenPublisher failed to handle upload-error" in caplog.text


def test_logging_publisher_writes_payload(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="pharmabid.adapters.events"):
        LoggingEventPublisher().publish(_event("dist-z"))

    assert "upload-error" in caplog.text
    assert "dist-z" in caplog.text


def _webhook(
    handler: httpx.MockTransport, *, url: str | None = "https://hooks.test/events"
) -> WebhookEventPublisher:
    config = WebhookConfig(
        url=url,
        secret=None,
        resilience=ResilienceConfig(name="webhook-test", retry=RetryPolicy(total=0)),
    )
    return WebhookEventPublisher(
        config=config,
        client_factory=lambda resilience: ResilientClient(resilience, transport=handler),
    )


def test_webhook_posts_event_json() -> None:
    received: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(204)

    publisher = _webhook(httpx.MockTransport(handler))
    publisher.publish(_event())
    publisher.close()

    [request] = received
    assert request.method == "POST"
    assert str(request.url) == "https://hooks.test/events"
    body = json.loads(request.content)
    assert body["type"] == "upload-error"
    assert body["payload"] == {"distributor": "dist-a", "error": "bad header"}


def test_webhook_disabled_without_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    publisher = _webhook(httpx.MockTransport(handler), url=None)

    assert not publisher.config.enabled
    publisher.publish(_event())
    publisher.flush()


def test_webhook_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(400))
    publisher = _webhook(transport)

    with caplog.at_level(logging.ERROR, logger="pharmabid.adapters.webhook"):
        publisher.publish(_event())
        publisher.flush()
    publisher.close()

    assert "Webhook delivery of upload-error failed" in caplog.text


def test_webhook_deliver_raises_on_error_status() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(410))

    with pytest.raises(WebhookDeliveryError) as excinfo:
        asyncio.run(_webhook(transport).deliver(_event()))

    assert excinfo.value.status_code == 410


def test_webhook_publish_does_not_wait_for_the_endpoint() -> None:
    gate = threading.Event()
    delivered: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        gate.wait(timeout=5)
        delivered.append(json.loads(request.content)["type"])
        return httpx.Response(204)

    publisher = _webhook(httpx.MockTransport(handler))
    try:
        publisher.publish(_event())
        publisher.publish(_event("dist-b"))
        assert delivered == []
    finally:
        gate.set()
        publisher.close()

    assert delivered == ["upload-error", "upload-error"]


def test_webhook_publish_from_running_event_loop() -> None:
    received: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(204)

    publisher = _webhook(httpx.MockTransport(handler))

    async def publish_inside_loop() -> None:
        publisher.publish(_event())

    asyncio.run(publish_inside_loop())
    publisher.close()

    assert len(received) == 1

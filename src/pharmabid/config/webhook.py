"""Webhook notification sink configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, optional_env_str
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy


@dataclass(frozen=True)
class WebhookConfig:
    """Where domain events are POSTed, if anywhere."""

    url: str | None
    secret: str | None
    resilience: ResilienceConfig

    @property
    def enabled(self) -> bool:
        return self.url is not None


def get_webhook_config(*, resilience: ResilienceConfig | None = None) -> WebhookConfig:
    secret = optional_env_str("PHARMABID_WEBHOOK_SECRET")
    headers = {"X-Pharmabid-Secret": secret} if secret else None
    return WebhookConfig(
        url=optional_env_str("PHARMABID_WEBHOOK_URL"),
        secret=secret,
        resilience=resilience
        or ResilienceConfig(
            name="webhook",
            timeout_seconds=env_float("PHARMABID_WEBHOOK_TIMEOUT_SECONDS", 10.0),
            retry=RetryPolicy(total=env_int("PHARMABID_WEBHOOK_RETRIES", 4)),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers=headers,
        ),
    )

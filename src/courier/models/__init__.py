"""Data models for Courier.

Persisted:
    - Subscription: Registered endpoint, secret, event filter, statistics

Read model:
    - SubscriptionView: Subscription without key material, plus failure rate

Ephemeral:
    - WebhookPayload: Event body sent to endpoints
    - AttemptOutcome: One HTTP round trip
    - DeliveryResult: Outcome of a full retried delivery
    - TestResult: Outcome of a manual test delivery
"""

from .base import generate_id, utc_now
from .delivery import AttemptOutcome, DeliveryResult, TestResult, WebhookPayload
from .subscription import (
    KNOWN_EVENTS,
    TEST_EVENT,
    EventName,
    Subscription,
    SubscriptionView,
)

__all__ = [
    "KNOWN_EVENTS",
    "TEST_EVENT",
    "AttemptOutcome",
    "DeliveryResult",
    "EventName",
    "Subscription",
    "SubscriptionView",
    "TestResult",
    "WebhookPayload",
    "generate_id",
    "utc_now",
]

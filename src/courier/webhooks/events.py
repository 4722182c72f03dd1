"""Producer-side helpers for emitting webhook events.

Deciding which subscriptions receive an event is the producer's job: it
enumerates the owner's active subscriptions for the event and calls
DeliveryService.deliver() once per match. dispatch_event() packages that
fan-out for producers that don't need anything custom.

Example:
    ```python
    from courier.webhooks import dispatch_event

    results = await dispatch_event(
        store,
        delivery,
        owner_id="user_123",
        event="entry.created",
        data={"id": "entry_1", "name": "Meditation"},
    )
    ```
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from courier.logging import get_logger
from courier.models import DeliveryResult, WebhookPayload

if TYPE_CHECKING:
    from courier.models import Subscription
    from courier.storage import SubscriptionStore

    from .delivery import DeliveryService

logger = get_logger(__name__)


def build_payload(event: str, data: dict[str, Any] | None = None) -> WebhookPayload:
    """Create a payload stamped with the current UTC time."""
    return WebhookPayload(event=event, data=dict(data or {}))


async def dispatch_event(
    store: SubscriptionStore,
    delivery: DeliveryService,
    owner_id: str,
    event: str,
    data: dict[str, Any] | None = None,
    max_concurrent: int = 10,
) -> dict[str, DeliveryResult]:
    """Deliver an event to every matching active subscription of an owner.

    Deliveries run concurrently, bounded by max_concurrent. An unexpected
    exception in one delivery is logged and does not affect the others.

    Args:
        store: Subscription store to enumerate.
        delivery: Delivery service performing retried, monitored delivery.
        owner_id: Owner whose subscriptions receive the event.
        event: Event name.
        data: Event-specific payload data.
        max_concurrent: Maximum deliveries in flight at once.

    Returns:
        Mapping of subscription id to DeliveryResult for completed deliveries.
    """
    subscriptions = await store.list_for_event(owner_id, event)
    if not subscriptions:
        logger.debug("No webhooks subscribed to event", webhook_event=event, owner_id=owner_id)
        return {}

    payload = build_payload(event, data)
    semaphore = asyncio.Semaphore(max_concurrent)

    async def _deliver(subscription: Subscription) -> DeliveryResult:
        async with semaphore:
            return await delivery.deliver(subscription, payload)

    outcomes = await asyncio.gather(
        *(_deliver(s) for s in subscriptions),
        return_exceptions=True,
    )

    results: dict[str, DeliveryResult] = {}
    for subscription, outcome in zip(subscriptions, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            logger.error(
                "Webhook delivery raised",
                webhook_id=subscription.id,
                webhook_event=event,
                error=str(outcome),
                exc_info=outcome,
            )
            continue
        results[subscription.id] = outcome

    return results

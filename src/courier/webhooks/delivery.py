"""Retried, monitored webhook delivery.

DeliveryService is what event producers call: it runs the retry
controller for one (subscription, payload) pair, then records the final
result with the reliability monitor.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from courier.logging import get_logger, log_context
from courier.models import DeliveryResult, WebhookPayload

if TYPE_CHECKING:
    from courier.models import Subscription

    from .monitor import ReliabilityMonitor
    from .retry import RetryController

logger = get_logger(__name__)


class DeliveryService:
    """Delivers one event to one subscription and updates its statistics.

    Whether the subscription should receive the event (active, subscribed)
    is the producer's decision; deliver() sends whatever it is given.

    Example:
        ```python
        service = DeliveryService(retry_controller, monitor)
        result = await service.deliver(subscription, build_payload("entry.created", data))
        ```
    """

    def __init__(self, retry: RetryController, monitor: ReliabilityMonitor) -> None:
        self._retry = retry
        self._monitor = monitor

    async def deliver(
        self,
        subscription: Subscription,
        payload: WebhookPayload | Mapping[str, Any],
    ) -> DeliveryResult:
        """Deliver a payload with retries and record the outcome.

        Args:
            subscription: Target webhook.
            payload: Event payload ({event, timestamp, data}).

        Returns:
            DeliveryResult; failures are returned, not raised.
        """
        event = payload.event if isinstance(payload, WebhookPayload) else payload.get("event")
        with log_context(
            webhook_id=subscription.id,
            owner_id=subscription.owner_id,
            webhook_event=event,
        ):
            result = await self._retry.deliver(subscription, payload)
            await self._monitor.record(subscription, result)

            if result.success:
                logger.info(
                    "Webhook delivered",
                    url=subscription.url,
                    attempts=result.attempts,
                    status_code=result.status_code,
                )
            else:
                logger.warning(
                    "Webhook delivery failed",
                    url=subscription.url,
                    attempts=result.attempts,
                    error=result.error,
                )

        return result

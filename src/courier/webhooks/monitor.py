"""Delivery statistics and automatic circuit-breaking.

After every completed delivery the monitor folds the outcome into the
subscription's counters and its rolling outcome window. Once the window
holds enough outcomes, a failure rate strictly above the threshold
deactivates the subscription. The monitor never re-enables; only the
owner can.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from courier.logging import get_logger

if TYPE_CHECKING:
    from courier.config import Settings
    from courier.models import DeliveryResult, Subscription
    from courier.storage import SubscriptionStore

logger = get_logger(__name__)

AUTO_DISABLE_REASON = "sustained delivery failure rate"

DEFAULT_WINDOW_SIZE = 20
DEFAULT_FAILURE_RATE_THRESHOLD = 0.5


class ReliabilityMonitor:
    """Records delivery outcomes and applies the auto-disable policy.

    Attributes:
        window_size: Outcomes kept per subscription; the oldest is dropped first.
        min_deliveries: Outcomes required before the policy is evaluated.
        failure_rate_threshold: Rate above which a subscription is disabled.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        window_size: int = DEFAULT_WINDOW_SIZE,
        min_deliveries: int = DEFAULT_WINDOW_SIZE,
        failure_rate_threshold: float = DEFAULT_FAILURE_RATE_THRESHOLD,
    ) -> None:
        if min_deliveries > window_size:
            raise ValueError("min_deliveries cannot exceed window_size")
        self._store = store
        self.window_size = window_size
        self.min_deliveries = min_deliveries
        self.failure_rate_threshold = failure_rate_threshold

    @classmethod
    def from_settings(cls, settings: Settings, store: SubscriptionStore) -> ReliabilityMonitor:
        return cls(
            store,
            window_size=settings.failure_window_size,
            min_deliveries=settings.min_deliveries_for_auto_disable,
            failure_rate_threshold=settings.failure_rate_threshold,
        )

    def apply(self, subscription: Subscription, success: bool) -> bool:
        """Fold one outcome into a subscription and evaluate the policy.

        Mutates the subscription in place.

        Returns:
            True if this outcome caused the subscription to be disabled.
        """
        subscription.record_outcome(success, self.window_size)

        if not subscription.active:
            return False
        if len(subscription.recent_outcomes) < self.min_deliveries:
            return False

        rate = subscription.window_failure_rate
        if rate <= self.failure_rate_threshold:
            return False

        failures = sum(1 for ok in subscription.recent_outcomes if not ok)
        subscription.active = False
        subscription.disabled_reason = (
            f"{AUTO_DISABLE_REASON}: {failures} of the last "
            f"{len(subscription.recent_outcomes)} deliveries failed"
        )
        return True

    async def record(
        self, subscription: Subscription, result: DeliveryResult
    ) -> Subscription | None:
        """Persist the outcome of a completed deliver call.

        The update is an atomic read-modify-write on the stored record, so
        concurrent deliveries to the same subscription never lose counts.

        Args:
            subscription: Subscription that was delivered to.
            result: Final result of the delivery.

        Returns:
            The updated subscription, or None if it was deleted meanwhile.
        """
        disabled = False

        def _update(record: Subscription) -> None:
            nonlocal disabled
            disabled = self.apply(record, result.success)

        updated = await self._store.mutate(subscription.id, subscription.owner_id, _update)

        if updated is None:
            logger.warning(
                "Delivery outcome not recorded, webhook no longer exists",
                webhook_id=subscription.id,
            )
            return None

        if disabled:
            logger.warning(
                "Webhook auto-disabled",
                webhook_id=updated.id,
                owner_id=updated.owner_id,
                failure_rate=updated.window_failure_rate,
                reason=updated.disabled_reason,
            )

        return updated

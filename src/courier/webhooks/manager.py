"""Owner-facing webhook subscription management.

Every operation is scoped to the caller's owner id. A subscription that
belongs to someone else raises the same NotFoundError as one that does not
exist. Returned records are SubscriptionView instances, which never carry
the signing secret.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from courier.exceptions import NotFoundError, ValidationError
from courier.logging import get_logger, log_context
from courier.models import (
    TEST_EVENT,
    Subscription,
    SubscriptionView,
    TestResult,
    WebhookPayload,
    utc_now,
)

from .validation import validate_url

if TYPE_CHECKING:
    from courier.config import Settings
    from courier.storage import SubscriptionStore

    from .executor import DeliveryExecutor

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"url", "secret", "events", "description", "active"})

TEST_MESSAGE = "This is a test webhook delivery from Courier"


def _as_validation_error(error: PydanticValidationError) -> ValidationError:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "request"
    return ValidationError(field, first["msg"])


class SubscriptionManager:
    """Register, list, update, delete and test webhook subscriptions.

    Example:
        ```python
        manager = SubscriptionManager(store, executor)

        webhook = await manager.register(
            "user_123",
            url="https://example.com/webhook",
            secret="s3cr3t-value",
            events=["entry.created"],
        )
        result = await manager.test(webhook.id, "user_123")
        ```
    """

    def __init__(
        self,
        store: SubscriptionStore,
        executor: DeliveryExecutor,
        min_secret_length: int = 8,
    ) -> None:
        self._store = store
        self._executor = executor
        self._min_secret_length = min_secret_length

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: SubscriptionStore,
        executor: DeliveryExecutor,
    ) -> SubscriptionManager:
        return cls(store, executor, min_secret_length=settings.min_secret_length)

    def _check_secret(self, secret: str) -> None:
        if not isinstance(secret, str):
            raise ValidationError("secret", "Secret must be a string")
        if len(secret) < self._min_secret_length:
            raise ValidationError(
                "secret", f"Secret must be at least {self._min_secret_length} characters"
            )

    async def register(
        self,
        owner_id: str,
        url: str,
        secret: str,
        events: list[str],
        description: str | None = None,
    ) -> SubscriptionView:
        """Register a new webhook.

        Args:
            owner_id: Account registering the webhook.
            url: HTTPS endpoint.
            secret: Signing secret shared with the receiver.
            events: Non-empty list of event names.
            description: Optional description.

        Returns:
            The created subscription, active with zeroed statistics.

        Raises:
            ValidationError: If the URL, secret or events are invalid.
        """
        url = validate_url(url)
        self._check_secret(secret)
        if not events:
            raise ValidationError("events", "At least one event must be selected")

        try:
            subscription = Subscription(
                owner_id=owner_id,
                url=url,
                secret=secret,
                events=events,
                description=description,
            )
        except PydanticValidationError as e:
            raise _as_validation_error(e) from e

        created = await self._store.create(subscription)
        logger.info(
            "Webhook registered",
            webhook_id=created.id,
            owner_id=owner_id,
            events=created.events,
        )
        return created.to_view()

    async def list(self, owner_id: str) -> list[SubscriptionView]:
        """List the owner's webhooks with delivery statistics, newest first."""
        subscriptions = await self._store.list_for_owner(owner_id)
        return [s.to_view() for s in subscriptions]

    async def get(self, subscription_id: str, owner_id: str) -> SubscriptionView:
        """Get one of the owner's webhooks.

        Raises:
            NotFoundError: If the webhook isn't owned by owner_id.
        """
        subscription = await self._store.get(subscription_id, owner_id)
        if subscription is None:
            raise NotFoundError("webhook", subscription_id)
        return subscription.to_view()

    async def update(
        self, subscription_id: str, owner_id: str, **changes: Any
    ) -> SubscriptionView:
        """Apply a partial update to one of the owner's webhooks.

        Accepted fields: url, secret, events, description, active.
        Re-enabling a webhook (active=True) clears any engine-set
        disabled_reason and starts a fresh outcome window.

        Raises:
            NotFoundError: If the webhook isn't owned by owner_id.
            ValidationError: If a field is unknown or invalid; nothing is saved.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "Field cannot be updated")

        def _apply(record: Subscription) -> None:
            values = dict(changes)
            if "url" in values:
                values["url"] = validate_url(values["url"])
            if "secret" in values:
                self._check_secret(values["secret"])

            was_active = record.active
            try:
                for field, value in values.items():
                    setattr(record, field, value)
            except PydanticValidationError as e:
                raise _as_validation_error(e) from e

            if "active" in changes:
                record.disabled_reason = None
                if record.active and not was_active:
                    record.recent_outcomes = []
            record.updated_at = utc_now()

        updated = await self._store.mutate(subscription_id, owner_id, _apply)
        if updated is None:
            raise NotFoundError("webhook", subscription_id)

        logger.info(
            "Webhook updated",
            webhook_id=subscription_id,
            owner_id=owner_id,
            fields=sorted(changes),
        )
        return updated.to_view()

    async def delete(self, subscription_id: str, owner_id: str) -> None:
        """Permanently delete one of the owner's webhooks.

        Raises:
            NotFoundError: If the webhook isn't owned by owner_id.
        """
        if not await self._store.delete(subscription_id, owner_id):
            raise NotFoundError("webhook", subscription_id)
        logger.info("Webhook deleted", webhook_id=subscription_id, owner_id=owner_id)

    async def test(self, subscription_id: str, owner_id: str) -> TestResult:
        """Send a single test delivery to one of the owner's webhooks.

        Exactly one attempt is made, with no retries, and the webhook's
        delivery statistics are left untouched.

        Raises:
            NotFoundError: If the webhook isn't owned by owner_id.
        """
        subscription = await self._store.get(subscription_id, owner_id)
        if subscription is None:
            raise NotFoundError("webhook", subscription_id)

        payload = WebhookPayload(
            event=TEST_EVENT,
            data={"message": TEST_MESSAGE, "webhook_id": subscription.id},
        )
        with log_context(webhook_id=subscription.id, owner_id=owner_id, webhook_event=TEST_EVENT):
            outcome = await self._executor.attempt(subscription, payload)
            logger.info(
                "Webhook test delivery",
                success=outcome.ok,
                status_code=outcome.status_code,
            )
        return TestResult.from_outcome(outcome)

"""Courier service container.

Wires the store, executor, retry controller, reliability monitor,
delivery service and subscription manager from one Settings object.

Example:
    ```python
    from courier.service import CourierService

    async with CourierService.create() as courier:
        webhooks = await courier.manager.list("user_123")
        results = await courier.dispatch("user_123", "entry.created", {"id": "e1"})
    ```
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from courier.config import Settings
from courier.models import DeliveryResult, Subscription, WebhookPayload
from courier.storage import SubscriptionStore, create_store
from courier.webhooks import (
    DeliveryExecutor,
    DeliveryService,
    ReliabilityMonitor,
    RetryController,
    SubscriptionManager,
    dispatch_event,
)
from courier.webhooks.retry import Sleep


@dataclass
class CourierService:
    """High-level entry point for webhook management and delivery.

    Attributes:
        store: Subscription store.
        settings: Configuration settings.
        http_client: Outbound HTTP client; the executor creates and owns one if None.
        sleep: Backoff sleep used between attempts.
    """

    store: SubscriptionStore
    settings: Settings
    http_client: httpx.AsyncClient | None = None
    sleep: Sleep = asyncio.sleep

    executor: DeliveryExecutor = field(init=False, repr=False)
    retry: RetryController = field(init=False, repr=False)
    monitor: ReliabilityMonitor = field(init=False, repr=False)
    delivery: DeliveryService = field(init=False, repr=False)
    manager: SubscriptionManager = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.executor = DeliveryExecutor.from_settings(self.settings, client=self.http_client)
        self.retry = RetryController.from_settings(self.settings, self.executor, sleep=self.sleep)
        self.monitor = ReliabilityMonitor.from_settings(self.settings, self.store)
        self.delivery = DeliveryService(self.retry, self.monitor)
        self.manager = SubscriptionManager.from_settings(self.settings, self.store, self.executor)

    @classmethod
    def create(cls, settings: Settings | None = None) -> CourierService:
        """Create a CourierService with the store selected by settings.

        Args:
            settings: Optional settings. Uses environment if None.

        Returns:
            Configured (not yet initialized) CourierService.
        """
        if settings is None:
            settings = Settings()
        return cls(store=create_store(settings), settings=settings)

    async def initialize(self) -> None:
        """Initialize the service (storage collections, etc.)."""
        await self.store.initialize()

    async def close(self) -> None:
        """Release the store and any HTTP client the executor created."""
        await self.executor.close()
        await self.store.close()

    async def __aenter__(self) -> CourierService:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def deliver(
        self,
        subscription: Subscription,
        payload: WebhookPayload | Mapping[str, Any],
    ) -> DeliveryResult:
        """Deliver one event to one subscription (retried and monitored)."""
        return await self.delivery.deliver(subscription, payload)

    async def dispatch(
        self,
        owner_id: str,
        event: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, DeliveryResult]:
        """Fan an event out to the owner's matching active subscriptions."""
        return await dispatch_event(
            self.store,
            self.delivery,
            owner_id,
            event,
            data,
            max_concurrent=self.settings.max_concurrent_deliveries,
        )

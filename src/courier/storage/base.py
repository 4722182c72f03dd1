"""Subscription store interface.

Stores are keyed by (owner_id, subscription_id): every read and write names
the owner, so a subscription owned by someone else is indistinguishable
from a missing one.

Read-modify-write goes through mutate(), which serializes updates to a
single subscription behind a per-subscription asyncio.Lock. Updates to
different subscriptions never contend.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from courier.models import Subscription


class SubscriptionStore(ABC):
    """Abstract base class for subscription persistence."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    async def initialize(self) -> None:
        """Prepare the backing store (connections, collections)."""

    async def close(self) -> None:
        """Release backing store resources."""

    async def __aenter__(self) -> SubscriptionStore:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _lock_for(self, subscription_id: str, owner_id: str) -> asyncio.Lock:
        key = (owner_id, subscription_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @abstractmethod
    async def create(self, subscription: Subscription) -> Subscription:
        """Persist a new subscription."""

    @abstractmethod
    async def get(self, subscription_id: str, owner_id: str) -> Subscription | None:
        """Get a subscription by id, or None if it isn't owned by owner_id."""

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> list[Subscription]:
        """List an owner's subscriptions, newest first."""

    @abstractmethod
    async def save(self, subscription: Subscription) -> Subscription:
        """Overwrite an existing subscription record."""

    @abstractmethod
    async def _remove(self, subscription_id: str, owner_id: str) -> bool:
        """Remove a record; return whether it existed."""

    async def delete(self, subscription_id: str, owner_id: str) -> bool:
        """Permanently delete a subscription.

        Returns:
            True if deleted, False if not found for this owner.
        """
        async with self._lock_for(subscription_id, owner_id):
            removed = await self._remove(subscription_id, owner_id)
        self._locks.pop((owner_id, subscription_id), None)
        return removed

    async def list_for_event(self, owner_id: str, event: str) -> list[Subscription]:
        """Get an owner's active subscriptions that receive an event."""
        subscriptions = await self.list_for_owner(owner_id)
        return [s for s in subscriptions if s.subscribes_to(event)]

    async def mutate(
        self,
        subscription_id: str,
        owner_id: str,
        fn: Callable[[Subscription], None],
    ) -> Subscription | None:
        """Atomically read, modify and write back one subscription.

        Args:
            subscription_id: Subscription to modify.
            owner_id: Owner the subscription must belong to.
            fn: Mutates the freshly loaded record in place. Exceptions
                propagate and leave the stored record untouched.

        Returns:
            The saved subscription, or None if not found.
        """
        async with self._lock_for(subscription_id, owner_id):
            subscription = await self.get(subscription_id, owner_id)
            if subscription is None:
                return None
            fn(subscription)
            return await self.save(subscription)

"""In-process subscription store.

Records live in nested dicts (owner_id -> subscription_id -> record) and
are copied on the way in and out, so callers never hold a live reference
that could bypass mutate().
"""

from __future__ import annotations

from courier.exceptions import StorageError
from courier.models import Subscription

from .base import SubscriptionStore


class InMemorySubscriptionStore(SubscriptionStore):
    """Subscription store backed by a dict; contents are lost on restart."""

    def __init__(self) -> None:
        super().__init__()
        self._records: dict[str, dict[str, Subscription]] = {}

    async def create(self, subscription: Subscription) -> Subscription:
        owned = self._records.setdefault(subscription.owner_id, {})
        if subscription.id in owned:
            raise StorageError(f"Webhook already exists: {subscription.id}")
        owned[subscription.id] = subscription.model_copy(deep=True)
        return subscription.model_copy(deep=True)

    async def get(self, subscription_id: str, owner_id: str) -> Subscription | None:
        record = self._records.get(owner_id, {}).get(subscription_id)
        return record.model_copy(deep=True) if record is not None else None

    async def list_for_owner(self, owner_id: str) -> list[Subscription]:
        records = sorted(
            self._records.get(owner_id, {}).values(),
            key=lambda s: s.created_at,
            reverse=True,
        )
        return [r.model_copy(deep=True) for r in records]

    async def save(self, subscription: Subscription) -> Subscription:
        owned = self._records.get(subscription.owner_id, {})
        if subscription.id not in owned:
            raise StorageError(f"Webhook does not exist: {subscription.id}")
        owned[subscription.id] = subscription.model_copy(deep=True)
        return subscription.model_copy(deep=True)

    async def _remove(self, subscription_id: str, owner_id: str) -> bool:
        owned = self._records.get(owner_id)
        if owned is None or subscription_id not in owned:
            return False
        del owned[subscription_id]
        if not owned:
            del self._records[owner_id]
        return True

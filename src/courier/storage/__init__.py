"""Storage backends for Courier subscriptions.

Example:
    ```python
    from courier.storage import create_store

    async with create_store(settings) as store:
        subscriptions = await store.list_for_owner("user_123")
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import SubscriptionStore
from .memory import InMemorySubscriptionStore
from .qdrant import QdrantSubscriptionStore

if TYPE_CHECKING:
    from courier.config import Settings


def create_store(settings: Settings) -> SubscriptionStore:
    """Build the subscription store selected by settings.storage_backend."""
    if settings.storage_backend == "qdrant":
        return QdrantSubscriptionStore(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            prefix=settings.collection_prefix,
        )
    return InMemorySubscriptionStore()


__all__ = [
    "InMemorySubscriptionStore",
    "QdrantSubscriptionStore",
    "SubscriptionStore",
    "create_store",
]

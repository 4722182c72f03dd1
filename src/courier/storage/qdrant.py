"""Qdrant-backed subscription store.

Subscriptions are stored as payload-only points in a single
"{prefix}_webhooks" collection. No similarity search is needed, so every
point carries the same one-dimensional zero vector. Point IDs are derived
from (owner_id, subscription_id), which keeps lookups owner-scoped.

Example:
    ```python
    from courier.storage import QdrantSubscriptionStore

    async with QdrantSubscriptionStore(url="http://localhost:6333") as store:
        subscriptions = await store.list_for_owner("user_123")
    ```
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from qdrant_client import AsyncQdrantClient, models

from courier.config import settings
from courier.exceptions import StorageError
from courier.models import Subscription

from .base import SubscriptionStore
from .retry import qdrant_retry, storage_errors

logger = logging.getLogger(__name__)

COLLECTION_SUFFIX = "webhooks"

# Placeholder vector; points are only ever filtered, never searched
_VECTOR_SIZE = 1
_ZERO_VECTOR = [0.0] * _VECTOR_SIZE

_SCROLL_PAGE_SIZE = 256


class QdrantSubscriptionStore(SubscriptionStore):
    """Async Qdrant storage for webhook subscriptions.

    Attributes:
        client: Async Qdrant client instance.
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        prefix: str | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize storage client.

        Args:
            url: Qdrant server URL. Defaults to settings.qdrant_url.
            api_key: Qdrant API key. Defaults to settings.qdrant_api_key.
            prefix: Collection name prefix. Defaults to settings.collection_prefix.
            client: Pre-built client (e.g. local ":memory:" mode for tests).
        """
        super().__init__()
        self._url = url or settings.qdrant_url
        self._api_key = api_key or settings.qdrant_api_key
        self._prefix = prefix or settings.collection_prefix
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> AsyncQdrantClient:
        """Get the Qdrant client, raising if not initialized."""
        if self._client is None:
            raise RuntimeError("Storage not initialized. Call initialize() first.")
        return self._client

    @property
    def collection_name(self) -> str:
        return f"{self._prefix}_{COLLECTION_SUFFIX}"

    async def initialize(self) -> None:
        """Create the client if needed and ensure the collection exists."""
        if self._client is None:
            self._client = AsyncQdrantClient(url=self._url, api_key=self._api_key)
        await self._ensure_collection()

    async def close(self) -> None:
        """Close the client connection if this store created it."""
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None

    @staticmethod
    def _build_key(subscription_id: str, owner_id: str) -> str:
        return f"{owner_id}/{subscription_id}"

    @staticmethod
    def _key_to_point_id(key: str) -> str:
        """Convert a storage key to a valid Qdrant point ID.

        Qdrant requires point IDs to be UUIDs or unsigned integers, so the
        key is hashed into a deterministic UUID-format string.
        """
        h = hashlib.sha256(key.encode()).hexdigest()[:32]
        return f"{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"

    def _point_id(self, subscription_id: str, owner_id: str) -> str:
        return self._key_to_point_id(self._build_key(subscription_id, owner_id))

    @qdrant_retry
    async def _ensure_collection(self) -> None:
        collections = await self.client.get_collections()
        existing = [c.name for c in collections.collections]
        if self.collection_name in existing:
            return

        await self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=models.VectorParams(
                size=_VECTOR_SIZE,
                distance=models.Distance.DOT,
            ),
        )
        await self.client.create_payload_index(
            collection_name=self.collection_name,
            field_name="owner_id",
            field_schema=models.PayloadSchemaType.KEYWORD,
        )
        logger.info("Created Qdrant collection %s", self.collection_name)

    @qdrant_retry
    async def _retrieve(self, point_id: str) -> dict[str, Any] | None:
        results = await self.client.retrieve(
            collection_name=self.collection_name,
            ids=[point_id],
            with_payload=True,
        )
        if not results:
            return None
        return results[0].payload

    @qdrant_retry
    async def _upsert(self, subscription: Subscription) -> None:
        await self.client.upsert(
            collection_name=self.collection_name,
            points=[
                models.PointStruct(
                    id=self._point_id(subscription.id, subscription.owner_id),
                    vector=_ZERO_VECTOR,
                    payload=subscription.model_dump(mode="json"),
                )
            ],
        )

    @qdrant_retry
    async def _scroll_page(
        self, owner_id: str, offset: Any = None
    ) -> tuple[list[models.Record], Any]:
        return await self.client.scroll(
            collection_name=self.collection_name,
            scroll_filter=models.Filter(
                must=[
                    models.FieldCondition(
                        key="owner_id",
                        match=models.MatchValue(value=owner_id),
                    )
                ]
            ),
            limit=_SCROLL_PAGE_SIZE,
            offset=offset,
            with_payload=True,
        )

    @qdrant_retry
    async def _delete_point(self, point_id: str) -> None:
        await self.client.delete(
            collection_name=self.collection_name,
            points_selector=models.PointIdsList(points=[point_id]),
        )

    @storage_errors
    async def create(self, subscription: Subscription) -> Subscription:
        point_id = self._point_id(subscription.id, subscription.owner_id)
        if await self._retrieve(point_id) is not None:
            raise StorageError(f"Webhook already exists: {subscription.id}")
        await self._upsert(subscription)
        return subscription

    @storage_errors
    async def get(self, subscription_id: str, owner_id: str) -> Subscription | None:
        payload = await self._retrieve(self._point_id(subscription_id, owner_id))
        if payload is None:
            return None
        return Subscription.model_validate(payload)

    @storage_errors
    async def list_for_owner(self, owner_id: str) -> list[Subscription]:
        subscriptions: list[Subscription] = []
        offset = None
        while True:
            records, offset = await self._scroll_page(owner_id, offset)
            subscriptions.extend(
                Subscription.model_validate(r.payload) for r in records if r.payload is not None
            )
            if offset is None:
                break

        subscriptions.sort(key=lambda s: s.created_at, reverse=True)
        return subscriptions

    @storage_errors
    async def save(self, subscription: Subscription) -> Subscription:
        await self._upsert(subscription)
        return subscription

    @storage_errors
    async def _remove(self, subscription_id: str, owner_id: str) -> bool:
        point_id = self._point_id(subscription_id, owner_id)
        if await self._retrieve(point_id) is None:
            return False
        await self._delete_point(point_id)
        return True

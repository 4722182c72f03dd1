"""Webhook delivery engine for Courier.

Provides HMAC-signed webhook delivery with fixed-schedule retry, delivery
statistics and automatic disabling of persistently failing endpoints.

Example:
    ```python
    from courier.service import CourierService

    async with CourierService.create() as courier:
        webhook = await courier.manager.register(
            "user_123",
            url="https://example.com/webhook",
            secret="s3cr3t-value",
            events=["entry.created"],
        )
        await courier.dispatch("user_123", "entry.created", {"id": "entry_1"})
    ```
"""

from .delivery import DeliveryService
from .events import build_payload, dispatch_event
from .executor import DeliveryExecutor
from .manager import SubscriptionManager
from .monitor import AUTO_DISABLE_REASON, ReliabilityMonitor
from .retry import RetryController
from .signing import canonical_json, sign, sign_body, verify_signature
from .validation import ensure_public_host, is_forbidden_address, validate_url

__all__ = [
    "AUTO_DISABLE_REASON",
    "DeliveryExecutor",
    "DeliveryService",
    "ReliabilityMonitor",
    "RetryController",
    "SubscriptionManager",
    "build_payload",
    "canonical_json",
    "dispatch_event",
    "ensure_public_host",
    "is_forbidden_address",
    "sign",
    "sign_body",
    "validate_url",
    "verify_signature",
]

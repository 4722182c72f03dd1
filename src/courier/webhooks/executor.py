"""Single-attempt webhook delivery.

The executor performs exactly one signed HTTP POST and classifies the
result. It never retries and never raises for network or HTTP failures;
those come back as an AttemptOutcome with ok=False.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import httpx

from courier.exceptions import PrivateAddressError
from courier.logging import get_logger
from courier.models import AttemptOutcome, WebhookPayload

from .signing import canonical_json, sign_body
from .validation import Resolver, default_resolver, ensure_public_host

if TYPE_CHECKING:
    from courier.config import Settings
    from courier.models import Subscription

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "Courier-Webhook/1.0"


class DeliveryExecutor:
    """Sends one signed POST to a webhook endpoint.

    Headers sent with every request:
    - Content-Type: application/json
    - User-Agent: product token identifying the sender
    - X-Webhook-Event: the payload's event name
    - X-Webhook-ID: the subscription id
    - X-Webhook-Signature: "sha256=<hex>" over the exact body bytes

    Example:
        ```python
        async with httpx.AsyncClient() as client:
            executor = DeliveryExecutor(client)
            outcome = await executor.attempt(subscription, payload)
            if not outcome.ok:
                print(outcome.error)
        ```
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        resolve_on_delivery: bool = False,
        resolver: Resolver = default_resolver,
    ) -> None:
        """Initialize the executor.

        Args:
            client: HTTP client to send with. Created lazily if None.
            timeout_seconds: Per-attempt timeout.
            user_agent: User-Agent header value.
            resolve_on_delivery: Re-check the resolved host address before sending.
            resolver: Hostname resolver used when resolve_on_delivery is set.
        """
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout_seconds
        self._user_agent = user_agent
        self._resolve_on_delivery = resolve_on_delivery
        self._resolver = resolver

    @classmethod
    def from_settings(
        cls, settings: Settings, client: httpx.AsyncClient | None = None
    ) -> DeliveryExecutor:
        return cls(
            client=client,
            timeout_seconds=settings.delivery_timeout_seconds,
            user_agent=settings.user_agent,
            resolve_on_delivery=settings.resolve_on_delivery,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client, created on first use when none was injected."""
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this executor created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_headers(self, subscription: Subscription, event: str, body: bytes) -> dict[str, str]:
        """Build the request headers for a delivery body."""
        return {
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
            "X-Webhook-Event": event,
            "X-Webhook-ID": subscription.id,
            "X-Webhook-Signature": sign_body(subscription.secret, body),
        }

    async def attempt(
        self,
        subscription: Subscription,
        payload: WebhookPayload | Mapping[str, Any],
    ) -> AttemptOutcome:
        """Perform one delivery attempt.

        Args:
            subscription: Target webhook.
            payload: Event payload with at least an "event" field.

        Returns:
            AttemptOutcome with ok=True iff the endpoint answered 2xx.
        """
        data = payload.to_dict() if isinstance(payload, WebhookPayload) else dict(payload)
        event = str(data.get("event", ""))
        body = canonical_json(data)
        headers = self.build_headers(subscription, event, body)

        try:
            if self._resolve_on_delivery:
                await ensure_public_host(urlsplit(subscription.url).hostname or "", self._resolver)
            response = await self.client.post(
                subscription.url,
                content=body,
                headers=headers,
                timeout=self._timeout,
            )
        except PrivateAddressError as e:
            logger.warning(
                "Webhook host resolved to a private address",
                webhook_id=subscription.id,
                url=subscription.url,
            )
            return AttemptOutcome(ok=False, error=e.message)
        except httpx.TimeoutException:
            return AttemptOutcome(ok=False, error=f"Request timed out after {self._timeout}s")
        except httpx.HTTPError as e:
            return AttemptOutcome(ok=False, error=f"{type(e).__name__}: {e}".rstrip(": "))
        except OSError as e:
            return AttemptOutcome(ok=False, error=f"Host resolution failed: {e}")
        except Exception as e:
            logger.exception("Unexpected webhook delivery error", webhook_id=subscription.id)
            return AttemptOutcome(ok=False, error=f"Unexpected error: {e}")

        if response.is_success:
            logger.debug(
                "Webhook attempt succeeded",
                webhook_id=subscription.id,
                webhook_event=event,
                status_code=response.status_code,
            )
            return AttemptOutcome(ok=True, status_code=response.status_code)

        logger.debug(
            "Webhook attempt rejected",
            webhook_id=subscription.id,
            webhook_event=event,
            status_code=response.status_code,
        )
        return AttemptOutcome(
            ok=False,
            status_code=response.status_code,
            error=f"HTTP {response.status_code}: {response.reason_phrase}",
        )

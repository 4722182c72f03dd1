"""API helper functions for building response objects."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from .schemas import WebhookResponse

if TYPE_CHECKING:
    from courier.models import SubscriptionView


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def webhook_to_response(view: SubscriptionView) -> WebhookResponse:
    """Convert a SubscriptionView to a WebhookResponse.

    Args:
        view: Secret-free subscription view.

    Returns:
        WebhookResponse with timestamps rendered as ISO strings.
    """
    return WebhookResponse(
        id=view.id,
        url=view.url,
        description=view.description,
        events=list(view.events),
        active=view.active,
        disabled_reason=view.disabled_reason,
        total_deliveries=view.total_deliveries,
        failed_deliveries=view.failed_deliveries,
        consecutive_failures=view.consecutive_failures,
        failure_rate=view.failure_rate,
        last_triggered_at=_isoformat(view.last_triggered_at),
        last_success_at=_isoformat(view.last_success_at),
        created_at=view.created_at.isoformat(),
        updated_at=view.updated_at.isoformat(),
    )

"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from courier.models import EventName


class RegisterWebhookRequest(BaseModel):
    """Request body for registering a webhook.

    Attributes:
        url: HTTPS endpoint to receive events.
        secret: Shared secret used to sign deliveries.
        events: Event names to subscribe to.
        description: Optional human-readable description.
    """

    model_config = ConfigDict(extra="forbid")

    url: str = Field(min_length=1, max_length=2048, description="HTTPS endpoint URL")
    secret: str = Field(description="Shared secret for HMAC-SHA256 signatures")
    events: list[EventName] = Field(min_length=1, description="Events to subscribe to")
    description: str | None = Field(default=None, max_length=500)


class UpdateWebhookRequest(BaseModel):
    """Request body for a partial webhook update.

    Only fields present in the request body are changed.
    """

    model_config = ConfigDict(extra="forbid")

    url: str | None = Field(default=None, min_length=1, max_length=2048)
    secret: str | None = None
    events: list[EventName] | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, max_length=500)
    active: bool | None = None


class WebhookResponse(BaseModel):
    """Response model for a webhook, without its secret.

    Attributes:
        id: Webhook ID.
        url: Endpoint URL.
        description: Optional description.
        events: Subscribed event names.
        active: Whether deliveries are attempted.
        disabled_reason: Set when the webhook was disabled automatically.
        total_deliveries: Completed deliveries.
        failed_deliveries: Deliveries that exhausted all attempts.
        consecutive_failures: Failed deliveries since the last success.
        failure_rate: failed_deliveries / total_deliveries.
        last_triggered_at: ISO timestamp of the last delivery.
        last_success_at: ISO timestamp of the last successful delivery.
        created_at: ISO timestamp of registration.
        updated_at: ISO timestamp of the last change.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    url: str
    description: str | None = None
    events: list[str]
    active: bool
    disabled_reason: str | None = None
    total_deliveries: int
    failed_deliveries: int
    consecutive_failures: int
    failure_rate: float
    last_triggered_at: str | None = None
    last_success_at: str | None = None
    created_at: str
    updated_at: str


class DeleteWebhookResponse(BaseModel):
    """Response for webhook deletion."""

    model_config = ConfigDict(extra="forbid")

    deleted: bool
    webhook_id: str


class TestDeliveryResult(BaseModel):
    """Outcome of a test delivery."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    success: bool
    status_code: int | None = None
    error: str | None = None


class TestWebhookResponse(BaseModel):
    """Response for the webhook test endpoint."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    webhook_id: str
    test_result: TestDeliveryResult


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status (healthy, unhealthy).
        version: API version.
        storage_connected: Whether the subscription store is initialized.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "unhealthy"]
    version: str
    storage_connected: bool

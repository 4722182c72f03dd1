"""Webhook subscription models.

A Subscription is the persisted record: endpoint, signing secret, event
filter and delivery statistics. SubscriptionView is the read model handed
to callers; it never carries the secret or the raw outcome window.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import generate_id, utc_now

# Event names producers emit today
EventName = Literal[
    "entry.created",
    "entry.updated",
    "entry.deleted",
    "streak.milestone",
    "rhythm.broken",
    "rhythm.completed",
    "pattern.detected",
    "import.completed",
]

KNOWN_EVENTS: list[str] = [
    "entry.created",
    "entry.updated",
    "entry.deleted",
    "streak.milestone",
    "rhythm.broken",
    "rhythm.completed",
    "pattern.detected",
    "import.completed",
]

# Synthetic event used by the manual endpoint test
TEST_EVENT = "test"


class Subscription(BaseModel):
    """A registered webhook endpoint and its delivery statistics.

    Attributes:
        id: Unique identifier, assigned at creation.
        owner_id: Account that owns this subscription.
        url: Validated HTTPS endpoint.
        secret: HMAC signing key shared with the receiver.
        description: Optional human-readable description.
        events: Event names this subscription receives.
        active: Whether deliveries should be attempted.
        disabled_reason: Set when the engine (not the owner) deactivated it.
        total_deliveries: Completed deliver calls.
        failed_deliveries: Deliver calls that exhausted all attempts.
        consecutive_failures: Failed deliver calls since the last success.
        recent_outcomes: Most recent delivery outcomes, oldest first.
        last_triggered_at: When the last delivery completed.
        last_success_at: When the last successful delivery completed.
        created_at: When the subscription was registered.
        updated_at: When the subscription was last modified.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(default_factory=lambda: generate_id("whk"))
    owner_id: str = Field(min_length=1, description="Account that owns this webhook")
    url: str = Field(description="HTTPS endpoint to receive events")
    secret: str = Field(min_length=1, description="Shared secret for HMAC-SHA256 signatures")
    description: str | None = Field(default=None, description="Human-readable description")
    events: list[str] = Field(min_length=1, description="Event names to subscribe to")
    active: bool = Field(default=True, description="Whether webhook is active")
    disabled_reason: str | None = Field(
        default=None, description="Why the engine deactivated this webhook"
    )
    total_deliveries: int = Field(default=0, ge=0)
    failed_deliveries: int = Field(default=0, ge=0)
    consecutive_failures: int = Field(default=0, ge=0)
    recent_outcomes: list[bool] = Field(
        default_factory=list,
        description="Rolling window of delivery outcomes (True = success)",
    )
    last_triggered_at: datetime | None = None
    last_success_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("events")
    @classmethod
    def _normalize_events(cls, events: list[str]) -> list[str]:
        cleaned = [event.strip() for event in events]
        if any(not event for event in cleaned):
            raise ValueError("event names must be non-empty")
        # Deduplicate while preserving order
        return list(dict.fromkeys(cleaned))

    def subscribes_to(self, event: str) -> bool:
        """Check if this webhook is active and subscribed to the event."""
        return self.active and event in self.events

    def record_outcome(self, success: bool, window_size: int) -> None:
        """Update counters and the rolling window for one completed delivery."""
        now = utc_now()
        self.total_deliveries += 1
        if success:
            self.consecutive_failures = 0
            self.last_success_at = now
        else:
            self.failed_deliveries += 1
            self.consecutive_failures += 1
        self.recent_outcomes = [*self.recent_outcomes, success][-window_size:]
        self.last_triggered_at = now
        self.updated_at = now

    @property
    def window_failure_rate(self) -> float:
        """Failure rate over the rolling outcome window (0.0 when empty)."""
        if not self.recent_outcomes:
            return 0.0
        failures = sum(1 for ok in self.recent_outcomes if not ok)
        return failures / len(self.recent_outcomes)

    def to_view(self) -> "SubscriptionView":
        """Build the secret-free representation returned to callers."""
        data = self.model_dump(exclude={"secret", "recent_outcomes"})
        failure_rate = (
            self.failed_deliveries / self.total_deliveries if self.total_deliveries else 0.0
        )
        return SubscriptionView(**data, failure_rate=failure_rate)


class SubscriptionView(BaseModel):
    """Caller-facing subscription record without key material."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    owner_id: str
    url: str
    description: str | None = None
    events: list[str]
    active: bool
    disabled_reason: str | None = None
    total_deliveries: int
    failed_deliveries: int
    consecutive_failures: int
    failure_rate: float = Field(ge=0.0, le=1.0, description="Lifetime failed/total ratio")
    last_triggered_at: datetime | None = None
    last_success_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


__all__ = [
    "KNOWN_EVENTS",
    "TEST_EVENT",
    "EventName",
    "Subscription",
    "SubscriptionView",
]

"""Delivery payload and result models.

None of these are persisted: payloads are built per event, outcomes and
results are returned to the caller and folded into subscription statistics.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .base import utc_now


class WebhookPayload(BaseModel):
    """Event payload sent to webhook endpoints.

    Attributes:
        event: Event name (entry.created, streak.milestone, etc.).
        timestamp: ISO-8601 time the event occurred.
        data: Event-specific payload data.
    """

    model_config = ConfigDict(extra="forbid")

    event: str = Field(min_length=1, description="Event name")
    timestamp: str = Field(
        default_factory=lambda: utc_now().isoformat(),
        description="When the event occurred (ISO-8601)",
    )
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific payload")

    def to_dict(self) -> dict[str, Any]:
        """Wire representation, with keys in event/timestamp/data order."""
        return self.model_dump(mode="json")


class AttemptOutcome(BaseModel):
    """Outcome of a single HTTP POST to a webhook endpoint."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    ok: bool
    status_code: int | None = None
    error: str | None = None


class DeliveryResult(BaseModel):
    """Final result of delivering one event to one subscription.

    Attributes:
        success: Whether any attempt received a 2xx response.
        attempts: Number of attempts made (1-based).
        status_code: Status of the last response received, if any.
        error: Description of the last failure, if unsuccessful.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    success: bool
    attempts: int = Field(ge=1)
    status_code: int | None = None
    error: str | None = None


class TestResult(BaseModel):
    """Result of a manual single-attempt test delivery."""

    __test__ = False  # keep pytest from collecting this class

    model_config = ConfigDict(extra="forbid", frozen=True)

    success: bool
    status_code: int | None = None
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: AttemptOutcome) -> "TestResult":
        return cls(success=outcome.ok, status_code=outcome.status_code, error=outcome.error)


__all__ = [
    "AttemptOutcome",
    "DeliveryResult",
    "TestResult",
    "WebhookPayload",
]

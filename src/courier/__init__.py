"""Courier: webhook delivery you can rely on.

Signed, retried, self-disabling delivery of application events to
user-registered HTTPS endpoints.

Quick Start:
    from courier.service import CourierService

    async with CourierService.create() as courier:
        # Register an endpoint
        webhook = await courier.manager.register(
            "user_123",
            url="https://example.com/webhook",
            secret="s3cr3t-value",
            events=["entry.created"],
        )

        # Emit an event to every matching endpoint
        results = await courier.dispatch(
            "user_123", "entry.created", {"id": "entry_1"}
        )

Receivers verify deliveries with courier.webhooks.verify_signature() over
the raw request body and the X-Webhook-Signature header.
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, settings

# Exceptions
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    CourierError,
    NotFoundError,
    PrivateAddressError,
    SchemeError,
    StorageError,
    ValidationError,
)

# Logging
from .logging import (
    bind_context,
    configure_logging,
    get_logger,
    log_context,
    logger,
)

# Models
from .models import (
    KNOWN_EVENTS,
    DeliveryResult,
    Subscription,
    SubscriptionView,
    TestResult,
    WebhookPayload,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "Settings",
    "settings",
    # Exceptions
    "CourierError",
    "ValidationError",
    "SchemeError",
    "PrivateAddressError",
    "NotFoundError",
    "StorageError",
    "ConfigurationError",
    "AuthenticationError",
    # Logging
    "configure_logging",
    "get_logger",
    "logger",
    "bind_context",
    "log_context",
    # Models
    "KNOWN_EVENTS",
    "Subscription",
    "SubscriptionView",
    "WebhookPayload",
    "DeliveryResult",
    "TestResult",
]

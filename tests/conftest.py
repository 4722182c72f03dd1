"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from helpers import SleepRecorder  # noqa: E402

from courier.models import Subscription  # noqa: E402
from courier.storage import InMemorySubscriptionStore  # noqa: E402


@pytest.fixture
def make_subscription() -> Callable[..., Subscription]:
    """Factory for subscriptions with sensible defaults."""

    def _make(**overrides: Any) -> Subscription:
        fields: dict[str, Any] = {
            "owner_id": "user_1",
            "url": "https://example.com/webhook",
            "secret": "test_secret_16chars",
            "events": ["entry.created", "entry.updated"],
        }
        fields.update(overrides)
        return Subscription(**fields)

    return _make


@pytest.fixture
def subscription(make_subscription: Callable[..., Subscription]) -> Subscription:
    """A single default subscription (not stored)."""
    return make_subscription()


@pytest.fixture
def store() -> InMemorySubscriptionStore:
    """Empty in-memory subscription store."""
    return InMemorySubscriptionStore()


@pytest.fixture
def sleep() -> SleepRecorder:
    """Recording replacement for asyncio.sleep."""
    return SleepRecorder()

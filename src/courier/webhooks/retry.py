"""Retried delivery with a fixed backoff schedule.

Attempt 1 runs immediately; failed attempts are retried after the next
delay in the schedule (1s, then 5s by default) until max_attempts is
reached. A 4xx answer is final, except 408 and 429. Attempts for one
call are strictly sequential.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_chain,
    wait_fixed,
    wait_none,
)
from tenacity.wait import wait_base

from courier.logging import get_logger
from courier.models import AttemptOutcome, DeliveryResult, WebhookPayload

if TYPE_CHECKING:
    from courier.config import Settings
    from courier.models import Subscription

    from .executor import DeliveryExecutor

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAYS: tuple[float, ...] = (1.0, 5.0)

# Client errors that can succeed on a later attempt
RETRYABLE_CLIENT_ERRORS = frozenset({408, 429})

Sleep = Callable[[float], Awaitable[None]]


def should_retry(outcome: AttemptOutcome) -> bool:
    """Check whether a failed attempt is worth repeating."""
    if outcome.ok:
        return False
    status = outcome.status_code
    if status is not None and 400 <= status < 500:
        return status in RETRYABLE_CLIENT_ERRORS
    return True


def _last_outcome(retry_state: RetryCallState) -> AttemptOutcome:
    # Called once attempts are exhausted; hand back the final outcome instead of raising
    outcome: AttemptOutcome = retry_state.outcome.result()  # type: ignore[union-attr]
    return outcome


class RetryController:
    """Drives up to max_attempts executor attempts for one event.

    Delivery failure is a normal return value: deliver() returns a
    DeliveryResult with success=False rather than raising.

    Example:
        ```python
        controller = RetryController(executor)
        result = await controller.deliver(subscription, payload)
        # result.success, result.attempts, result.error
        ```
    """

    def __init__(
        self,
        executor: DeliveryExecutor,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            executor: Performs individual attempts.
            max_attempts: Total attempts, including the first.
            delays: Seconds to wait before attempt 2, 3, ...; the last is reused.
            sleep: Awaitable sleep, replaceable in tests.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._executor = executor
        self._max_attempts = max_attempts
        self._delays = tuple(delays)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        executor: DeliveryExecutor,
        sleep: Sleep = asyncio.sleep,
    ) -> RetryController:
        return cls(
            executor,
            max_attempts=settings.max_attempts,
            delays=settings.retry_delays_seconds,
            sleep=sleep,
        )

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def delays(self) -> tuple[float, ...]:
        return self._delays

    def _wait_strategy(self) -> wait_base:
        if not self._delays:
            return wait_none()
        return wait_chain(*(wait_fixed(delay) for delay in self._delays))

    async def deliver(
        self,
        subscription: Subscription,
        payload: WebhookPayload | Mapping[str, Any],
    ) -> DeliveryResult:
        """Deliver a payload, retrying failed attempts with backoff.

        Args:
            subscription: Target webhook.
            payload: Event payload.

        Returns:
            DeliveryResult describing the successful or final attempt.
        """
        attempts = 0

        async def _attempt() -> AttemptOutcome:
            nonlocal attempts
            attempts += 1
            return await self._executor.attempt(subscription, payload)

        def _log_retry(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome.result() if retry_state.outcome else None
            logger.info(
                "Webhook attempt failed, retrying",
                webhook_id=subscription.id,
                attempt=retry_state.attempt_number,
                next_attempt_in=retry_state.next_action.sleep if retry_state.next_action else None,
                error=outcome.error if outcome else None,
            )

        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait_strategy(),
            retry=retry_if_result(should_retry),
            before_sleep=_log_retry,
            retry_error_callback=_last_outcome,
        )
        outcome: AttemptOutcome = await retrying(_attempt)

        if outcome.ok:
            return DeliveryResult(
                success=True,
                attempts=attempts,
                status_code=outcome.status_code,
            )

        return DeliveryResult(
            success=False,
            attempts=attempts,
            status_code=outcome.status_code,
            error=outcome.error,
        )

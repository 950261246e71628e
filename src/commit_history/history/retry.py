"""Retry policy for throttled provider calls.

The policy is an explicit state machine over ``RetryState``:

    ATTEMPTING --success--------------------------> (return value)
    ATTEMPTING --fatal error----------------------> (raise error unchanged)
    ATTEMPTING --throttled-------------------------> BACKING_OFF
    BACKING_OFF --sleep(attempt * base_delay)-----> ATTEMPTING, if attempt < max
    BACKING_OFF --sleep(attempt * base_delay)-----> EXHAUSTED, if attempt == max
    EXHAUSTED ------------------------------------> (raise RetryExhaustedError)

Backoff is linear in the attempt number: 200ms after the first throttled
attempt, 400ms after the second, 600ms after the third, and so on. Every
throttled attempt is followed by its backoff, the final one included.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional, TypeVar

from ..api_clients.error_handler import ProviderErrorHandler
from ..config import RetryConfig
from .errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 0.2


class RetryState(Enum):
    ATTEMPTING = "attempting"
    BACKING_OFF = "backing_off"
    EXHAUSTED = "exhausted"


class RetryPolicy:
    """Bounded retry of a single remote call on transient throttling errors."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        is_retryable: Optional[Callable[[Exception], bool]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        on_transition: Optional[Callable[[RetryState, int], None]] = None,
    ):
        """Initialize the policy.

        Args:
            max_attempts: Total attempts allowed, including the first one
            base_delay: Backoff unit in seconds
            is_retryable: Predicate deciding whether an error is transient;
                defaults to the provider error handler's throttling check
            sleep: Function used to wait between attempts (default time.sleep)
            on_transition: Optional observer called with every state entered
                and the current attempt number
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if base_delay < 0:
            raise ValueError(f"base_delay must not be negative, got {base_delay}")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.is_retryable = is_retryable or ProviderErrorHandler().is_error_retryable
        self._sleep = sleep
        self._on_transition = on_transition

    @classmethod
    def from_config(
        cls,
        config: RetryConfig,
        error_handler: Optional[ProviderErrorHandler] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> "RetryPolicy":
        """Build a policy from the retry configuration section."""
        handler = error_handler or ProviderErrorHandler()
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            is_retryable=handler.is_error_retryable,
            sleep=sleep,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff delay in seconds after the given (1-based) failed attempt."""
        return attempt * self.base_delay

    def _enter(self, state: RetryState, attempt: int) -> RetryState:
        if self._on_transition:
            self._on_transition(state, attempt)
        return state

    def call(
        self,
        operation: Callable[[], T],
        operation_name: str = "remote call",
        target_id: str = "",
    ) -> T:
        """Run ``operation`` under the retry policy.

        Args:
            operation: Zero-argument remote call
            operation_name: Name used in logs and in the exhaustion error
            target_id: Identifier of the object the call targets

        Returns:
            The operation's result

        Raises:
            RetryExhaustedError: If every attempt failed with a transient error
            Exception: Any non-transient error, unchanged, on first occurrence
        """
        attempt = 0
        last_error: Optional[Exception] = None
        state = self._enter(RetryState.ATTEMPTING, attempt + 1)

        while True:
            if state is RetryState.ATTEMPTING:
                attempt += 1
                try:
                    return operation()
                except Exception as e:
                    if not self.is_retryable(e):
                        raise
                    last_error = e
                    logger.debug(
                        f"{operation_name} for {target_id} throttled "
                        f"(attempt {attempt}/{self.max_attempts}): {e}"
                    )
                    state = self._enter(RetryState.BACKING_OFF, attempt)

            elif state is RetryState.BACKING_OFF:
                delay = self.delay_for(attempt)
                logger.warning(
                    f"{operation_name} for {target_id} throttled, "
                    f"backing off {delay:.2f}s (attempt {attempt}/{self.max_attempts})"
                )
                (self._sleep or time.sleep)(delay)
                if attempt < self.max_attempts:
                    state = self._enter(RetryState.ATTEMPTING, attempt + 1)
                else:
                    state = self._enter(RetryState.EXHAUSTED, attempt)

            else:
                assert last_error is not None
                logger.error(
                    f"{operation_name} for {target_id} failed after "
                    f"{attempt} throttled attempts"
                )
                raise RetryExhaustedError(
                    operation_name, target_id, attempt, last_error
                ) from last_error


def call_with_retry(
    operation: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    operation_name: str = "remote call",
    target_id: str = "",
    **policy_options,
) -> T:
    """Run a single remote call under a one-off ``RetryPolicy``."""
    policy = RetryPolicy(max_attempts=max_attempts, **policy_options)
    return policy.call(operation, operation_name=operation_name, target_id=target_id)

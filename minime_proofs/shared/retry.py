"""
Retry of whole proof operations on transient RPC failures.

The proof engine itself never retries. MinimeProofs wraps each operation
with retry_sync_operation when a caller asks for more than one attempt.

Exception Handling:
- By default, retries only on RetryableException and its subclasses
- NonRetryableException is never retried (propagates immediately)
- OperationCancelled is never retried
- No backoff sleep outlives the caller's CallContext deadline
"""

import logging
import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from minime_proofs.shared.context import BACKGROUND, CallContext
from minime_proofs.shared.exceptions import RetryableException

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    RetryableException,  # Includes RemoteReadFailure, MetadataUnavailable
)


class RetryConfig:
    """
    Backoff settings for the operations of a proof facade.

    Attributes:
        max_attempts: Total attempts, 1 means no retry
        base_delay: Delay after the first failure, in seconds
        max_delay: Upper bound of any single delay, in seconds
        exponential: Double the delay after each failure
        retryable_exceptions: Exception types worth another attempt
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential: bool = True,
        retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential = exponential
        self.retryable_exceptions = (
            retryable_exceptions or DEFAULT_RETRYABLE_EXCEPTIONS
        )

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the failed 0-based attempt `attempt`"""
        if self.exponential:
            return min(self.base_delay * (2**attempt), self.max_delay)
        return min(self.base_delay, self.max_delay)

    def with_attempts(self, max_attempts: int) -> "RetryConfig":
        """Same backoff, different number of attempts"""
        return RetryConfig(
            max_attempts=max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential=self.exponential,
            retryable_exceptions=self.retryable_exceptions,
        )


RPC_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay=1.0,
    max_delay=10.0,
    exponential=True,
)


def retry_sync_operation(
    operation: Callable[..., T],
    *args: Any,
    config: RetryConfig = RPC_RETRY_CONFIG,
    call_context: CallContext = BACKGROUND,
    operation_name: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """
    Call `operation`, retrying retryable failures with backoff.

    Before each backoff the context is checked: a cancelled or expired
    context raises OperationCancelled, and a deadline closer than the next
    delay ends the retries with the last failure.

    Args:
        operation: Function to call
        *args: Positional arguments for the operation
        config: Attempts and backoff
        call_context: Cancellation and deadline of the caller
        operation_name: Optional name for logging
        **kwargs: Keyword arguments for the operation

    Returns:
        Result of the operation
    """
    name = operation_name or getattr(operation, "__name__", "operation")
    last_exception: Optional[Exception] = None

    for attempt in range(config.max_attempts):
        try:
            return operation(*args, **kwargs)
        except config.retryable_exceptions as e:
            last_exception = e

        if attempt == config.max_attempts - 1:
            break

        call_context.check(name)
        delay = config.delay(attempt)
        remaining = call_context.remaining()
        if remaining is not None and remaining <= delay:
            logger.warning(
                f"Attempt {attempt + 1}/{config.max_attempts} failed for "
                f"{name}: {last_exception}. Deadline in {remaining:.1f}s, "
                f"giving up"
            )
            break

        logger.warning(
            f"Attempt {attempt + 1}/{config.max_attempts} failed for "
            f"{name}: {last_exception}. Retrying in {delay:.1f}s..."
        )
        time.sleep(delay)

    raise last_exception

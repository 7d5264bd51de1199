"""Retry utilities with exponential backoff.

Transactions against the ledger store can fail with transient conflicts
(optimistic version mismatch, serialization failure, lock timeout). Those
are retried here with exponential backoff; everything else propagates on
the first attempt.
"""
import logging
import random
import time
from typing import Any, Callable, Optional, TypeVar

from freight_auction.core import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds (doubles each retry)
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff (default: 2)
        jitter: Add randomness so conflicting writers do not retry in lockstep
    """

    def __init__(
        self,
        max_retries: int = 5,
        initial_delay: float = 0.02,
        max_delay: float = 0.5,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given retry attempt.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds before next retry

        Example:
            With initial_delay=0.02, exponential_base=2.0:
            - attempt 0: 0.02s
            - attempt 1: 0.04s
            - attempt 2: 0.08s
        """
        delay = self.initial_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay += random.uniform(0, 0.3 * delay)

        return delay


class RetryExhaustedError(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}"
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


def retry_sync(
    func: Callable[..., T],
    *args: Any,
    config: Optional[RetryConfig] = None,
    should_retry: Callable[[Exception], bool] = lambda e: True,
    operation: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """Retry a synchronous function with exponential backoff.

    Args:
        func: Function to retry
        *args: Positional arguments for func
        config: Retry configuration (uses defaults if None)
        should_retry: Predicate deciding whether an exception is transient
        operation: Name used in logs and metrics (defaults to func.__name__)
        sleep: Sleep function, replaceable in tests
        **kwargs: Keyword arguments for func

    Returns:
        Result from successful function call

    Raises:
        RetryExhaustedError: If every attempt failed with a transient error
        Exception: The first non-transient exception, unchanged
    """
    if config is None:
        config = RetryConfig()

    name = operation or getattr(func, "__name__", "operation")

    for attempt in range(config.max_retries + 1):
        try:
            result = func(*args, **kwargs)

            if attempt > 0:
                logger.info(f"🔁 {name} succeeded after {attempt} retries")

            return result

        except Exception as e:
            if not should_retry(e):
                raise

            if attempt >= config.max_retries:
                logger.error(
                    f"❌ {name}: all retries exhausted ({attempt + 1} attempts): {e}"
                )
                raise RetryExhaustedError(name, attempt + 1, e) from e

            delay = config.get_delay(attempt)
            metrics.transaction_retries_total.labels(operation=name).inc()

            logger.warning(
                f"⚠️  {name} conflicted, retrying "
                f"(attempt {attempt + 1}/{config.max_retries}, "
                f"delay {delay:.3f}s): {e}"
            )

            sleep(delay)

    raise RuntimeError("Retry logic error")

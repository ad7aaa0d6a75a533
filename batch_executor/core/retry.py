"""
Retry/backoff policy for a single item

Wraps the caller's operation so that every id produces exactly one terminal
ItemResult. Rate-limit failures are retried after the delay the remote
service asked for; anything else fails the item immediately. The backoff
sleep runs inside the control loop, so a retry delays the whole batch.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from batch_executor.core.errors import (
    DEFAULT_RETRY_DELAY,
    ErrorCategory,
    classify_error,
    describe_error,
    get_retry_delay,
    is_rate_limit_error,
)
from batch_executor.models.state import ItemResult
from batch_executor.utils.logging_config import set_context

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[str], Awaitable[T]]
SleepFunc = Callable[[float], Awaitable[Any]]
# (item_id, attempt, delay, error) -> awaitable, called before each backoff sleep
RetryHook = Callable[[str, int, float, BaseException], Awaitable[None]]


class RetryPolicy:
    """
    Bounded retry for rate-limited operations

    An item is attempted at most `max_retries + 1` times. Only errors whose
    message mentions "rate limit" are retried.
    """

    def __init__(
        self,
        max_retries: int = 3,
        default_retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Optional[SleepFunc] = None,
    ):
        """
        Initialize retry policy

        Args:
            max_retries: Retries allowed after the first attempt
            default_retry_delay: Backoff in seconds when the error names none
            sleep: Coroutine used for backoff sleeps (default: asyncio.sleep)
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.default_retry_delay = default_retry_delay
        self._sleep = sleep or asyncio.sleep

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """
        Decide whether a failed attempt gets another try

        Args:
            error: Error raised by the operation
            attempt: Zero-based index of the attempt that failed
        """
        return classify_error(error) is ErrorCategory.RATE_LIMIT and attempt < self.max_retries

    def backoff_for(self, error: BaseException) -> float:
        """Seconds to wait before retrying after `error`"""
        return get_retry_delay(error, default=self.default_retry_delay)

    async def execute(
        self,
        item_id: str,
        operation: Operation,
        on_retry: Optional[RetryHook] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> ItemResult:
        """
        Run the operation for one id until it succeeds or fails terminally

        Args:
            item_id: Identifier handed to the operation
            operation: Async callable taking the id
            on_retry: Optional hook awaited before each backoff sleep
            should_continue: Checked after each backoff sleep; when it returns
                False the item fails with the last error instead of retrying

        Returns:
            Terminal ItemResult; operation errors are captured, never raised
        """
        attempt = 0
        while True:
            set_context(attempt=attempt + 1)
            try:
                value = await operation(item_id)
            except Exception as e:
                if not self.should_retry(e, attempt):
                    if is_rate_limit_error(e):
                        logger.warning(
                            f"Item {item_id} still rate limited after {self.max_retries} retries: "
                            f"{describe_error(e)}"
                        )
                    else:
                        logger.warning(f"Item {item_id} failed: {describe_error(e)}")
                    return ItemResult.failure(item_id, e, attempts=attempt + 1)

                delay = self.backoff_for(e)
                logger.warning(
                    f"Rate limit hit for {item_id}. "
                    f"Retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries})",
                    extra={"delay": delay},
                )
                if on_retry is not None:
                    await on_retry(item_id, attempt + 1, delay, e)
                await self._sleep(delay)

                if should_continue is not None and not should_continue():
                    logger.info(f"Retry of {item_id} abandoned after backoff")
                    return ItemResult.failure(item_id, e, attempts=attempt + 1)
                attempt += 1
                continue

            if attempt > 0:
                logger.info(f"Item {item_id} succeeded after {attempt} retries")
            return ItemResult.success(item_id, value, attempts=attempt + 1)

"""
Error classification for batch operations

Two kinds of item failure exist:
- rate-limit errors: transient, retried after a backoff taken from the message
- terminal errors: anything else, or a rate-limit error out of retries

Detection is message based because the transport layer that raises these
errors is owned by the caller.
"""
import re
from enum import Enum
from typing import Optional

DEFAULT_RETRY_DELAY = 60.0  # seconds

_RATE_LIMIT_MARKER = "rate limit"
_RETRY_IN_PATTERN = re.compile(r"retry in (\d+) seconds?", re.IGNORECASE)


class ErrorCategory(str, Enum):
    """Categories of item errors"""
    RATE_LIMIT = "rate_limit"   # Remote service throttled the call, retryable
    TERMINAL = "terminal"       # Recorded against the item as-is


class BatchExecutorError(Exception):
    """Base class for errors raised by the batch executor itself"""


class InvalidOptionsError(BatchExecutorError, ValueError):
    """Executor options failed validation or could not be loaded"""


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Check whether an error signals remote throttling

    Args:
        error: Exception raised by the operation

    Returns:
        True if the message contains "rate limit" (case-insensitive)
    """
    return _RATE_LIMIT_MARKER in str(error).lower()


def get_retry_delay(error: BaseException, default: float = DEFAULT_RETRY_DELAY) -> float:
    """
    Extract the backoff the remote service asked for

    Looks for "retry in N second(s)" in the message.

    Args:
        error: Exception raised by the operation
        default: Delay in seconds when the message names none

    Returns:
        Delay in seconds
    """
    match = _RETRY_IN_PATTERN.search(str(error))
    if match:
        return float(match.group(1))
    return default


def classify_error(error: BaseException) -> ErrorCategory:
    """Classify an operation error into an ErrorCategory"""
    if is_rate_limit_error(error):
        return ErrorCategory.RATE_LIMIT
    return ErrorCategory.TERMINAL


def describe_error(error: Optional[BaseException]) -> str:
    """Short one-line description used in log messages"""
    if error is None:
        return "unknown error"
    message = str(error) or "no message"
    return f"{type(error).__name__}: {message}"

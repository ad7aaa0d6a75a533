"""Utility functions for the batch executor"""

from batch_executor.utils.logging_config import (
    setup_logging,
    set_context,
    clear_context,
    get_logger,
)

__all__ = [
    "setup_logging",
    "set_context",
    "clear_context",
    "get_logger",
]

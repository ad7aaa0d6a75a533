"""Batch runners"""

from batch_executor.runners.async_executor import BatchExecutor, run_batch

__all__ = ["BatchExecutor", "run_batch"]

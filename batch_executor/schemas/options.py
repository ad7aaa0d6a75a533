"""
Executor options schema

Validates pacing, retry and callback settings with clear error messages.
Durations are in seconds.
"""
import os
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from batch_executor.core.errors import DEFAULT_RETRY_DELAY, InvalidOptionsError

ENV_PREFIX = "BATCH_EXECUTOR_"

# Fields that can be set from the environment or an options file
TUNABLE_FIELDS = (
    "batch_size",
    "delay_between_items",
    "delay_between_batches",
    "max_retries",
    "default_retry_delay",
)


class BatchOptions(BaseModel):
    """
    Options for one BatchExecutor

    Example options file:
        batch_size: 5
        delay_between_items: 0.25
        delay_between_batches: 5
        max_retries: 2
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    batch_size: int = Field(
        default=3,
        ge=1,
        description="Items per batch; a longer cooldown follows each batch",
    )

    delay_between_items: float = Field(
        default=0.5,
        ge=0,
        description="Seconds to wait after each item except the last",
    )

    delay_between_batches: float = Field(
        default=2.0,
        ge=0,
        description="Seconds to wait after each batch except the last",
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for rate-limited items after the first attempt",
    )

    default_retry_delay: float = Field(
        default=DEFAULT_RETRY_DELAY,
        ge=0,
        description="Backoff in seconds when a rate-limit error names no delay",
    )

    on_complete: Optional[Callable[[List[Any]], Any]] = Field(default=None, exclude=True)
    on_progress: Optional[Callable[[int, int], Any]] = Field(default=None, exclude=True)
    on_item_complete: Optional[Callable[[Any], Any]] = Field(default=None, exclude=True)

    @classmethod
    def create(cls, **values: Any) -> "BatchOptions":
        """Build options, raising InvalidOptionsError instead of ValidationError"""
        try:
            return cls(**values)
        except ValidationError as e:
            raise InvalidOptionsError(format_validation_error(e)) from e

    @classmethod
    def from_env(cls, **overrides: Any) -> "BatchOptions":
        """
        Load options from BATCH_EXECUTOR_* environment variables

        A .env file in the working directory is read first. Keyword
        overrides win over the environment.

        Returns:
            BatchOptions instance
        """
        load_dotenv()

        values: Dict[str, Any] = {}
        for name in TUNABLE_FIELDS:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw.strip():
                values[name] = raw.strip()

        values.update(overrides)
        return cls.create(**values)

    def with_overrides(self, **changes: Any) -> "BatchOptions":
        """Return a validated copy with some fields replaced"""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        return type(self).create(**values)

    def tunables(self) -> Dict[str, Any]:
        """Numeric settings only, for logging and serialization"""
        return {name: getattr(self, name) for name in TUNABLE_FIELDS}


def format_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic ValidationError into one readable line per field"""
    messages = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "options"
        messages.append(f"{location}: {err['msg']}")
    return "Invalid batch options: " + "; ".join(messages)

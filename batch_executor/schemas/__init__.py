"""
Pydantic V2 schemas for the batch executor

Provides validation for executor options loaded from code, env or YAML.
"""
from batch_executor.schemas.options import BatchOptions, format_validation_error
from batch_executor.schemas.loader import load_options, load_yaml_file

__all__ = [
    "BatchOptions",
    "format_validation_error",
    "load_options",
    "load_yaml_file",
]

"""
YAML loader for executor options

Lets call sites keep pacing presets (e.g. one per remote service) in files.
"""
import yaml
from pathlib import Path
from typing import Any, Dict, Union

from batch_executor.core.errors import InvalidOptionsError
from batch_executor.schemas.options import BatchOptions


def load_yaml_file(file_path: Path) -> Dict[str, Any]:
    """
    Load a YAML mapping

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed YAML data (empty dict for an empty file)

    Raises:
        FileNotFoundError: If file doesn't exist
        InvalidOptionsError: If YAML is malformed or not a mapping
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    with open(file_path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidOptionsError(f"Invalid YAML in {file_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidOptionsError(
            f"Expected a mapping in {file_path}, got {type(data).__name__}"
        )
    return data


def load_options(path: Union[str, Path], **overrides: Any) -> BatchOptions:
    """
    Load and validate BatchOptions from a YAML file

    Args:
        path: Options file
        **overrides: Values that win over the file (callbacks go here)

    Returns:
        Validated BatchOptions
    """
    data = load_yaml_file(Path(path))
    data.update(overrides)
    return BatchOptions.create(**data)

"""
Utility functions and helpers for the client observer.

This module provides validation helpers, configuration file loading and
async helpers shared by the pipeline components.
"""

import inspect
import json
import logging
import re
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import yaml

from .exceptions import ValidationError

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')

def validate_range(
    value: Optional[Union[int, float]],
    min_value: Optional[Union[int, float]] = None,
    max_value: Optional[Union[int, float]] = None,
    field_name: str = "value"
) -> Optional[Union[int, float]]:
    """Validate that an optional numeric value is within a specified range."""
    if value is None:
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(field_name, value, "must be a number")
    if min_value is not None and value < min_value:
        raise ValidationError(field_name, value, f"must be >= {min_value}")
    if max_value is not None and value > max_value:
        raise ValidationError(field_name, value, f"must be <= {max_value}")
    return value


def to_snake_case(name: str) -> str:
    """Convert a camelCase key (``samplingPeriodInMs``) to snake_case."""
    return _CAMEL_BOUNDARY.sub('_', name).lower()


def normalize_keys(config: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively convert the keys of a configuration dictionary to snake_case."""
    result = {}
    for key, value in config.items():
        if isinstance(value, dict):
            value = normalize_keys(value)
        result[to_snake_case(key)] = value
    return result


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a YAML or JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the file format is not supported
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        if config_path.suffix in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        elif config_path.suffix == '.json':
            return json.load(f)
        else:
            raise ValueError(
                f"Unsupported config file format: {config_path.suffix}. "
                "Use .yaml, .yml, or .json"
            )


async def maybe_await(value: Union[Any, Awaitable[Any]]) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def invoke_callback(callback: Callable, *args: Any) -> None:
    """Invoke a sync or async callback, logging instead of raising on failure."""
    try:
        if inspect.iscoroutinefunction(callback):
            await callback(*args)
        else:
            await maybe_await(callback(*args))
    except Exception as e:
        logger.error(f"Error in callback {getattr(callback, '__name__', callback)!r}: {e}")


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string."""
    if seconds < 1:
        return f"{seconds*1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"

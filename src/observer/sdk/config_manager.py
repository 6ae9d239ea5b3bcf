"""
Configuration management for the client observer.

This module provides the configuration dataclasses of every pipeline
component and a manager that supports:
- Multiple configuration sources (files, environment, code)
- camelCase or snake_case keys
- Validation and defaults
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..monitoring.logging_config import LoggingConfig
from .exceptions import ConfigurationError, ValidationError
from .utils import load_config_file, normalize_keys, validate_range

logger = logging.getLogger(__name__)

ENV_PREFIX = "OBSERVER_"


@dataclass
class AdapterConfig:
    """Browser facts used to pick the stats adapter."""
    browser_type: Optional[str] = None
    browser_version: Optional[str] = None


@dataclass
class CollectorConfig:
    """Configuration for the stats collector."""
    adapter: Optional[AdapterConfig] = None


@dataclass
class SamplerConfig:
    """Identifiers stamped on every client sample."""
    client_id: Optional[str] = None
    call_id: Optional[str] = None
    room_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class SenderConfig:
    """Configuration for the sample sender."""
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: float = 10.0

    def __post_init__(self):
        if not self.url:
            raise ConfigurationError("Sender configuration requires a 'url'")
        validate_range(self.timeout, 0, None, "sender.timeout")


@dataclass
class AccumulatorConfig:
    """Configuration for the sample accumulator."""
    max_samples_per_batch: Optional[int] = None

    def __post_init__(self):
        validate_range(self.max_samples_per_batch, 1, None, "accumulator.max_samples_per_batch")


@dataclass
class ObserverConfig:
    """Main observer configuration.

    A positive period enables the matching cadence; None or 0 disables it.
    """
    collecting_period_in_ms: Optional[int] = None
    sampling_period_in_ms: Optional[int] = None
    sending_period_in_ms: Optional[int] = None
    stats_expiration_time_in_ms: Optional[int] = None

    collectors: CollectorConfig = field(default_factory=CollectorConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    sender: Optional[SenderConfig] = None
    accumulator: AccumulatorConfig = field(default_factory=AccumulatorConfig)
    logging: Optional[LoggingConfig] = None

    def __post_init__(self):
        for name in self.period_fields():
            validate_range(getattr(self, name), 0, None, name)

    @staticmethod
    def period_fields() -> List[str]:
        return [
            "collecting_period_in_ms",
            "sampling_period_in_ms",
            "sending_period_in_ms",
            "stats_expiration_time_in_ms",
        ]


_NESTED = {
    "collectors": CollectorConfig,
    "sampler": SamplerConfig,
    "sender": SenderConfig,
    "accumulator": AccumulatorConfig,
    "logging": LoggingConfig,
}


class ConfigManager:
    """
    Builds and manages an :class:`ObserverConfig`.

    Configuration precedence (highest to lowest):
    1. Runtime overrides
    2. Environment variables (``OBSERVER_SAMPLING_PERIOD_IN_MS``, ...)
    3. Configuration files or dictionaries
    4. Default values
    """

    def __init__(self, config: Optional[Union[ObserverConfig, Dict[str, Any], str, Path]] = None,
                 use_env: bool = True):
        """
        Initialize the configuration manager.

        Args:
            config: Can be:
                - ObserverConfig instance
                - Dictionary of configuration values (camelCase or snake_case keys)
                - Path to a YAML or JSON configuration file (str or Path)
                - None (uses defaults)
            use_env: Apply ``OBSERVER_*`` environment overrides to the periods
        """
        self._config = self._load_config(config)
        if use_env:
            self._apply_env_overrides()

    def _load_config(self, config: Optional[Union[ObserverConfig, Dict[str, Any], str, Path]]) -> ObserverConfig:
        if config is None:
            return ObserverConfig()

        elif isinstance(config, ObserverConfig):
            return config

        elif isinstance(config, dict):
            return self.create_config_from_dict(config)

        elif isinstance(config, (str, Path)):
            return self.create_config_from_dict(load_config_file(config))

        else:
            raise ConfigurationError(
                f"Invalid configuration type: {type(config)}. "
                "Expected ObserverConfig, dict, str, Path, or None"
            )

    @staticmethod
    def create_config_from_dict(config_dict: Dict[str, Any]) -> ObserverConfig:
        """Create an ObserverConfig from a (possibly camelCase) dictionary."""
        raw_sender = config_dict.get("sender")
        config_dict = normalize_keys(config_dict)
        if isinstance(raw_sender, dict) and isinstance(raw_sender.get("headers"), dict):
            # header names are sent as given
            config_dict["sender"]["headers"] = dict(raw_sender["headers"])
        known = {f.name for f in fields(ObserverConfig)}
        unknown = set(config_dict) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {sorted(unknown)}",
                {"unknown": sorted(unknown)}
            )
        try:
            for key, config_class in _NESTED.items():
                value = config_dict.get(key)
                if isinstance(value, dict):
                    if key == "collectors" and isinstance(value.get("adapter"), dict):
                        value = dict(value, adapter=AdapterConfig(**value["adapter"]))
                    config_dict[key] = config_class(**value)
            return ObserverConfig(**config_dict)
        except (ConfigurationError, ValidationError):
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Failed to create configuration: {e}")

    def _apply_env_overrides(self):
        for name in ObserverConfig.period_fields():
            env_value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if env_value is None:
                continue
            value = self._parse_env_value(env_value)
            validate_range(value, 0, None, name)
            setattr(self._config, name, value)
            logger.debug(f"Applied environment override: {name} = {value}")

    @property
    def config(self) -> ObserverConfig:
        """Get the current configuration."""
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Supports nested keys using dot notation (e.g., 'sender.url').
        """
        value: Any = self._config
        for part in key.split('.'):
            if value is None or not hasattr(value, part):
                return default
            value = getattr(value, part)
        return value

    def validate(self) -> List[str]:
        """
        Validate the current configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []
        if self._config.sending_period_in_ms and self._config.sender is None:
            errors.append("sending_period_in_ms is set but no sender is configured")
        if self._config.sending_period_in_ms and not self._config.sampling_period_in_ms:
            errors.append("sending_period_in_ms is set but samples are never made periodically")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        def convert(obj):
            if hasattr(obj, '__dataclass_fields__'):
                return {f.name: convert(getattr(obj, f.name)) for f in fields(obj)}
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            return obj

        return convert(self._config)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML or JSON file."""
        path = Path(path)
        config_dict = self.to_dict()

        with open(path, 'w') as f:
            if path.suffix == '.json':
                json.dump(config_dict, f, indent=2)
            else:
                yaml.safe_dump(config_dict, f, default_flow_style=False)

        logger.info(f"Configuration saved to {path}")

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

        try:
            if '.' in value:
                return float(value)
            return int(value)
        except ValueError:
            return value

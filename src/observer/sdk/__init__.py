"""
Configuration, exceptions and helpers shared by the observer components.
"""

from .config_manager import (
    AccumulatorConfig,
    AdapterConfig,
    CollectorConfig,
    ConfigManager,
    ObserverConfig,
    SamplerConfig,
    SenderConfig,
)
from .exceptions import (
    ConfigurationError,
    InvalidInputError,
    ObserverError,
    SenderClosedError,
    TransportError,
    ValidationError,
)

__all__ = [
    # Configuration
    "AccumulatorConfig",
    "AdapterConfig",
    "CollectorConfig",
    "ConfigManager",
    "ObserverConfig",
    "SamplerConfig",
    "SenderConfig",

    # Exceptions
    "ConfigurationError",
    "InvalidInputError",
    "ObserverError",
    "SenderClosedError",
    "TransportError",
    "ValidationError",
]

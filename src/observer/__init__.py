"""
Client observer: WebRTC stats normalization, sampling and delivery.
"""

from .accumulator import Accumulator
from .adapters import Chrome86Adapter, Chrome86To96Adapter, Firefox94Adapter, create_adapter
from .client_observer import ClientObserver
from .collector import Collector, PcStatsCollector
from .devices import (
    Browser,
    ClientDevices,
    Engine,
    MediaDevice,
    MediaDeviceKind,
    MediaDevices,
    OperationSystem,
    Platform,
)
from .events import EventsRelayer
from .sampler import ClientSample, ExtensionStat, Sampler, TrackRelation
from .schemas import StatsRecord, StatsType, cast_stats, merge_fields
from .sdk import (
    AccumulatorConfig,
    AdapterConfig,
    CollectorConfig,
    ConfigManager,
    ConfigurationError,
    InvalidInputError,
    ObserverConfig,
    ObserverError,
    SamplerConfig,
    SenderClosedError,
    SenderConfig,
    TransportError,
    ValidationError,
)
from .sender import Sender
from .storage import StatsEntry, StatsReader, StatsStorage
from .timer import Timer

__version__ = "1.0.0"

__all__ = [
    # Facade
    "ClientObserver",

    # Pipeline
    "Accumulator",
    "Collector",
    "PcStatsCollector",
    "Sampler",
    "Sender",
    "StatsStorage",
    "StatsReader",
    "StatsEntry",
    "Timer",
    "EventsRelayer",

    # Adapters and schema
    "Chrome86Adapter",
    "Chrome86To96Adapter",
    "Firefox94Adapter",
    "create_adapter",
    "StatsRecord",
    "StatsType",
    "cast_stats",
    "merge_fields",

    # Samples and devices
    "ClientSample",
    "ExtensionStat",
    "TrackRelation",
    "ClientDevices",
    "OperationSystem",
    "Browser",
    "Platform",
    "Engine",
    "MediaDevice",
    "MediaDeviceKind",
    "MediaDevices",

    # Configuration
    "AccumulatorConfig",
    "AdapterConfig",
    "CollectorConfig",
    "ConfigManager",
    "ObserverConfig",
    "SamplerConfig",
    "SenderConfig",

    # Exceptions
    "ObserverError",
    "ConfigurationError",
    "ValidationError",
    "InvalidInputError",
    "SenderClosedError",
    "TransportError",
]

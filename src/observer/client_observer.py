"""
Client observer.

Wires the collector, storage, sampler, accumulator, sender and timer
together and exposes them to the application:

    observer = ClientObserver.create({
        "collectingPeriodInMs": 2000,
        "samplingPeriodInMs": 4000,
        "sendingPeriodInMs": 8000,
        "sender": {"url": "https://observer.example.com/samples"},
    })
    observer.add_stats_collector(PcStatsCollector("pc1", pc.getStats, label="main"))
    ...
    await observer.close()
"""

import asyncio
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .accumulator import Accumulator
from .collector import Collector, PcStatsCollector
from .devices import Browser, ClientDevices, Engine, MediaDevice, MediaDevices, OperationSystem, Platform
from .events import SAMPLE_CREATED, SAMPLE_SENT, STATS_COLLECTED, EventsRelayer
from .monitoring import ComponentType, CorrelationIdManager, LoggingManager, global_performance_monitor
from .sampler import ClientSample, ExtensionStat, Sampler, TrackRelation
from .sdk.config_manager import AdapterConfig, CollectorConfig, ConfigManager, ObserverConfig
from .sdk.exceptions import ConfigurationError
from .sender import Sender
from .storage import StatsReader, StatsStorage
from .timer import Timer


class ClientObserver:
    """Observes the peer connections of one client and reports samples of their stats."""

    def __init__(
        self,
        config: Optional[ObserverConfig] = None,
        devices: Optional[ClientDevices] = None,
        sender: Optional[Sender] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        self.config = config or ObserverConfig()
        self.logging_manager = LoggingManager(self.config.logging)
        if self.config.logging is not None:
            self.logging_manager.configure()
        self.logger = self.logging_manager.get_logger(ComponentType.OBSERVER.value)
        self.metrics_logger = self.logging_manager.get_structured_logger(ComponentType.OBSERVER.value)
        self._clock = clock or (lambda: time.time() * 1000)

        devices = devices or ClientDevices()
        collector_config = self.config.collectors
        if collector_config.adapter is None and devices.browser is not None:
            collector_config = CollectorConfig(
                adapter=AdapterConfig(devices.browser.name, devices.browser.version)
            )

        self.storage = StatsStorage(self._clock, self.logging_manager.get_logger(ComponentType.STORAGE.value))
        self.collector = Collector(
            self.storage.update,
            collector_config,
            logger=self.logging_manager.get_logger(ComponentType.COLLECTOR.value)
        )
        self.sampler = Sampler(
            self.storage,
            self.config.sampler,
            self._clock,
            self.logging_manager.get_logger(ComponentType.SAMPLER.value)
        )
        self.accumulator = Accumulator(
            self.config.accumulator,
            self.logging_manager.get_logger(ComponentType.ACCUMULATOR.value)
        )
        if sender is None and self.config.sender is not None:
            sender = Sender(self.config.sender, logger=self.logging_manager.get_logger(ComponentType.SENDER.value))
        self.sender: Optional[Sender] = sender
        self.timer = Timer(self.logging_manager.get_logger(ComponentType.TIMER.value))
        self.events = EventsRelayer(self.logging_manager.get_logger(ComponentType.EVENTS.value))
        self.media_devices = MediaDevices()

        for name, value in (("os", devices.os), ("browser", devices.browser),
                            ("platform", devices.platform), ("engine", devices.engine)):
            if value is not None:
                getattr(self.sampler, f"add_{name}")(value)

        self._send_lock = asyncio.Lock()
        self._closed = False
        CorrelationIdManager.set_client_id(self.sampler.client_id)

    @classmethod
    def create(
        cls,
        config: Optional[Union[ObserverConfig, Dict[str, Any], str, Path]] = None,
        **kwargs
    ) -> 'ClientObserver':
        """
        Build an observer and start its periodic tasks.

        Args:
            config: ObserverConfig, configuration dict or path to a YAML/JSON file
            **kwargs: Passed to the constructor (devices, sender, clock)

        Raises:
            ConfigurationError: If a period is configured and no event loop is running
        """
        manager = ConfigManager(config)
        observer = cls(manager.config, **kwargs)
        for problem in manager.validate():
            observer.logger.warning(f"Configuration problem: {problem}")
        observer.start()
        return observer

    def start(self):
        """Schedule the collect, sample and send cycles whose period is set."""
        config = self.config
        if config.collecting_period_in_ms:
            self.timer.add("collect", config.collecting_period_in_ms, self.collect)
        if config.sampling_period_in_ms:
            self.timer.add("sample", config.sampling_period_in_ms, self.sample)
        if config.sending_period_in_ms:
            self.timer.add("send", config.sending_period_in_ms, self.send)
        self.logger.info(
            f"Client observer {self.client_id} started "
            f"(collect={config.collecting_period_in_ms}ms, sample={config.sampling_period_in_ms}ms, "
            f"send={config.sending_period_in_ms}ms)"
        )

    @property
    def client_id(self) -> str:
        return self.sampler.client_id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stats(self) -> StatsReader:
        return StatsReader(self.storage)

    # Stats sources

    def add_stats_collector(self, collector: PcStatsCollector):
        self.storage.register(collector.id, collector.label)
        self.collector.add(collector)

    def remove_stats_collector(self, collector_id: str) -> bool:
        removed = self.collector.remove(collector_id)
        self.storage.unregister(collector_id)
        return removed

    # Metadata

    def add_track_relation(self, relation: TrackRelation):
        self.sampler.add_track_relation(relation)

    def remove_track_relation(self, track_id: str) -> bool:
        return self.sampler.remove_track_relation(track_id)

    def add_media_constraints(self, constraints: str):
        self.sampler.add_media_constraints(constraints)

    def add_user_media_error(self, error: str):
        self.sampler.add_user_media_error(error)

    def add_extension_stats(self, stats: ExtensionStat):
        self.sampler.add_extension_stats(stats)

    def set_marker(self, marker: Optional[str]):
        self.sampler.set_marker(marker)

    def add_media_device(self, device: MediaDevice):
        if self.media_devices.add(device):
            self.sampler.add_media_device(device)

    def remove_media_device(self, device_id: str) -> bool:
        return self.media_devices.remove(device_id)

    def add_os(self, os: OperationSystem):
        self.sampler.add_os(os)

    def add_browser(self, browser: Browser):
        self.sampler.add_browser(browser)

    def add_platform(self, platform: Platform):
        self.sampler.add_platform(platform)

    def add_engine(self, engine: Engine):
        self.sampler.add_engine(engine)

    # Pipeline operations

    async def collect(self) -> int:
        """Collect the stats of every source, then drop expired entries."""
        if self._closed:
            self.logger.warning("collect() called on a closed observer")
            return 0
        CorrelationIdManager.set_correlation_id()
        collected = await self.collector.collect()

        expiration = self.config.stats_expiration_time_in_ms
        if expiration:
            self.storage.trim(self._clock() - expiration)

        await self.events.emit(STATS_COLLECTED, collected)
        return collected

    async def sample(self) -> Optional[ClientSample]:
        """Make a sample and queue it for sending when a sender is configured."""
        if self._closed:
            self.logger.warning("sample() called on a closed observer")
            return None
        sample = self.sampler.make()
        if sample is None:
            return None
        if self.sender is not None:
            self.accumulator.add_client_sample(sample)

        await self.events.emit(SAMPLE_CREATED, sample)
        return sample

    async def send(self) -> int:
        """
        Send every queued sample, one batch at a time.

        A failed batch closes and drops the sender; neither it nor the
        batches queued behind it are retried.

        Returns:
            Number of samples delivered

        Raises:
            ConfigurationError: If no sender is configured (or it was dropped after a failure)
        """
        if self.sender is None:
            raise ConfigurationError("no Sender configured")

        delivered: List[List[ClientSample]] = []
        async with self._send_lock:
            sender = self.sender
            if sender is None:
                raise ConfigurationError("no Sender configured")

            batches: List[List[ClientSample]] = []
            self.accumulator.drain_to(lambda batch: batches.append(batch) if batch else None)

            for index, batch in enumerate(batches):
                try:
                    await sender.send(batch)
                except Exception as e:
                    self.logger.error(f"Sending {len(batch)} samples failed, closing the sender: {e}")
                    self.sender = None
                    await sender.close()
                    dropped = sum(len(rest) for rest in batches[index + 1:])
                    if dropped:
                        self.logger.warning(f"Dropped {dropped} samples queued behind the failed batch")
                    break
                delivered.append(batch)

        for batch in delivered:
            await self.events.emit(SAMPLE_SENT, batch)
        return sum(len(batch) for batch in delivered)

    async def close(self):
        """Stop every cycle and release all resources. The observer cannot be reused."""
        if self._closed:
            self.logger.warning(f"Client observer {self.client_id} is already closed")
            return
        self._closed = True
        self.timer.clear()
        self.collector.close()
        self.sampler.close()

        async with self._send_lock:
            sender, self.sender = self.sender, None
            if sender is not None:
                await sender.close()

        self.accumulator.clear()
        self.storage.clear()
        for component in (ComponentType.COLLECTOR, ComponentType.SENDER):
            summary = global_performance_monitor.get_component_summary(component.value)
            if summary:
                self.metrics_logger.log_performance_metrics(component.value, summary)
        self.events.clear()
        self.logger.info(f"Client observer {self.client_id} closed")

"""
Stats collector.

Pulls the raw stats report of every registered peer connection, runs it
through the dialect adapter and forwards the canonical records to a sink
(normally :meth:`StatsStorage.update`).
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .adapters import BaseAdapter, create_adapter
from .monitoring import ComponentType, CorrelationIdManager, monitor_performance
from .schemas import StatsRecord
from .sdk.config_manager import CollectorConfig
from .sdk.utils import maybe_await

GetStats = Callable[[], Union[Any, Awaitable[Any]]]
StatsSink = Callable[[str, StatsRecord], Any]


@dataclass
class PcStatsCollector:
    """A stats source: one peer connection and the function pulling its report."""
    id: str
    get_stats: GetStats
    label: Optional[str] = None


class Collector:
    """Collects canonical stats from all registered peer connections."""

    def __init__(
        self,
        sink: StatsSink,
        config: Optional[CollectorConfig] = None,
        adapter: Optional[BaseAdapter] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or CollectorConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.adapter = adapter or create_adapter(self.config.adapter, self.logger)
        self._sink = sink
        self._sources: Dict[str, PcStatsCollector] = {}

    @property
    def sources(self) -> List[PcStatsCollector]:
        return list(self._sources.values())

    def add(self, source: PcStatsCollector) -> None:
        """Register a source. Adding an already registered id replaces it."""
        if source.id in self._sources:
            self.logger.debug(f"Replacing stats collector {source.id}")
        self._sources[source.id] = source

    def remove(self, collector_id: str) -> bool:
        return self._sources.pop(collector_id, None) is not None

    def has(self, collector_id: str) -> bool:
        return collector_id in self._sources

    @monitor_performance(component=ComponentType.COLLECTOR.value)
    async def collect(self) -> int:
        """
        Run one collection cycle.

        A source whose pull or adaptation fails is logged and skipped; its
        records are forwarded only when the whole report adapted cleanly.

        Returns:
            Number of records forwarded to the sink
        """
        forwarded = 0
        for source in list(self._sources.values()):
            token = CorrelationIdManager.set_collector_id(source.id)
            try:
                records = await self._collect_source(source)
            except Exception as e:
                self.logger.error(f"Failed to collect stats from {source.id}: {e}", exc_info=True)
                continue
            finally:
                CorrelationIdManager.reset_collector_id(token)

            if source.id not in self._sources:
                # removed while its report was being pulled
                continue
            for record in records:
                self._sink(source.id, record)
            forwarded += len(records)

        self.logger.debug(f"Collected {forwarded} stats records from {len(self._sources)} sources")
        return forwarded

    async def _collect_source(self, source: PcStatsCollector) -> List[StatsRecord]:
        raw_report = await maybe_await(source.get_stats())
        return list(self.adapter.adapt(raw_report))

    def close(self):
        self._sources.clear()

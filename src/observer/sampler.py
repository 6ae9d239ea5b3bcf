"""
Client sample assembly.

The sampler turns the current content of the stats storage and the
metadata reported since the previous sample (media constraints, user media
errors, extension stats, new media devices, a marker) into one immutable
:class:`ClientSample`. Assembly never awaits, so nothing can mutate the
storage while a snapshot is being taken.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .devices import Browser, ClientDevices, Engine, MediaDevice, OperationSystem, Platform
from .sdk.config_manager import SamplerConfig
from .storage import StatsEntry, StatsStorage


@dataclass(frozen=True)
class TrackRelation:
    """Binds a local media track to the SFU stream or sink carrying it."""
    track_id: str
    sfu_stream_id: Optional[str] = None
    sfu_sink_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trackId": self.track_id,
            "sfuStreamId": self.sfu_stream_id,
            "sfuSinkId": self.sfu_sink_id,
        }


@dataclass(frozen=True)
class ExtensionStat:
    """Application defined stats attached to the next sample."""
    extension_type: str
    payload: str

    def to_dict(self) -> Dict[str, Any]:
        return {"extensionType": self.extension_type, "payload": self.payload}


@dataclass(frozen=True)
class StatsEntrySample:
    """Snapshot of one storage entry."""
    stats_type: str
    id: str
    fields: Dict[str, Any]
    relations: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {"type": self.stats_type, "id": self.id}
        result.update(self.fields)
        if self.relations:
            result["relations"] = dict(self.relations)
        return result


@dataclass(frozen=True)
class PeerConnectionSample:
    """Snapshot of every entry of one peer connection."""
    peer_connection_id: str
    label: Optional[str]
    stats: Tuple[StatsEntrySample, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peerConnectionId": self.peer_connection_id,
            "label": self.label,
            "stats": [entry.to_dict() for entry in self.stats],
        }


@dataclass(frozen=True)
class ClientSample:
    """One immutable snapshot of the observed client."""
    client_id: str
    sample_seq: int
    timestamp: float
    time_zone_offset_in_hours: float
    call_id: Optional[str] = None
    room_id: Optional[str] = None
    user_id: Optional[str] = None
    marker: Optional[str] = None
    devices: Dict[str, Any] = field(default_factory=dict)
    track_relations: Tuple[TrackRelation, ...] = ()
    media_constraints: Tuple[str, ...] = ()
    user_media_errors: Tuple[str, ...] = ()
    extension_stats: Tuple[ExtensionStat, ...] = ()
    media_devices: Tuple[MediaDevice, ...] = ()
    peer_connections: Tuple[PeerConnectionSample, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "clientId": self.client_id,
            "callId": self.call_id,
            "roomId": self.room_id,
            "userId": self.user_id,
            "sampleSeq": self.sample_seq,
            "timestamp": self.timestamp,
            "timeZoneOffsetInHours": self.time_zone_offset_in_hours,
            "marker": self.marker,
            "trackRelations": [relation.to_dict() for relation in self.track_relations],
            "mediaConstraints": list(self.media_constraints),
            "userMediaErrors": list(self.user_media_errors),
            "extensionStats": [stat.to_dict() for stat in self.extension_stats],
            "mediaDevices": [device.to_dict() for device in self.media_devices],
            "peerConnections": [pc.to_dict() for pc in self.peer_connections],
        }
        result.update(self.devices)
        return {key: value for key, value in result.items() if value is not None}


def local_time_zone_offset_in_hours() -> float:
    offset = datetime.now().astimezone().utcoffset()
    return offset.total_seconds() / 3600 if offset is not None else 0.0


class Sampler:
    """Builds client samples from the storage and the pending metadata."""

    def __init__(
        self,
        storage: StatsStorage,
        config: Optional[SamplerConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or SamplerConfig()
        self.client_id = self.config.client_id or str(uuid.uuid4())
        self.logger = logger or logging.getLogger(__name__)
        self._storage = storage
        self._clock = clock or (lambda: time.time() * 1000)

        self.devices = ClientDevices()
        self._track_relations: Dict[str, TrackRelation] = {}
        self._media_constraints: List[str] = []
        self._user_media_errors: List[str] = []
        self._extension_stats: List[ExtensionStat] = []
        self._media_devices: List[MediaDevice] = []
        self._marker: Optional[str] = None

        self._sample_seq = 0
        self._last_version: Optional[int] = None
        self._dirty = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # Static device facts

    def add_os(self, os: OperationSystem):
        self.devices.os = os
        self._dirty = True

    def add_browser(self, browser: Browser):
        self.devices.browser = browser
        self._dirty = True

    def add_platform(self, platform: Platform):
        self.devices.platform = platform
        self._dirty = True

    def add_engine(self, engine: Engine):
        self.devices.engine = engine
        self._dirty = True

    # Side channel metadata

    def add_track_relation(self, relation: TrackRelation):
        self._track_relations[relation.track_id] = relation
        self._dirty = True

    def remove_track_relation(self, track_id: str) -> bool:
        if self._track_relations.pop(track_id, None) is None:
            return False
        self._dirty = True
        return True

    def add_media_constraints(self, constraints: str):
        self._media_constraints.append(constraints)
        self._dirty = True

    def add_user_media_error(self, error: str):
        self._user_media_errors.append(error)
        self._dirty = True

    def add_extension_stats(self, stats: ExtensionStat):
        self._extension_stats.append(stats)
        self._dirty = True

    def add_media_device(self, device: MediaDevice):
        self._media_devices.append(device)
        self._dirty = True

    def set_marker(self, marker: Optional[str]):
        self._marker = marker
        self._dirty = True

    # Assembly

    def make(self) -> Optional[ClientSample]:
        """
        Build the next sample.

        Returns None after :meth:`close` or when neither the storage nor any
        metadata changed since the previous sample. Pending metadata is
        consumed by the sample that carries it.
        """
        if self._closed:
            return None
        version = self._storage.version
        if not self._dirty and version == self._last_version:
            return None

        self._sample_seq += 1
        sample = ClientSample(
            client_id=self.client_id,
            sample_seq=self._sample_seq,
            timestamp=self._clock(),
            time_zone_offset_in_hours=local_time_zone_offset_in_hours(),
            call_id=self.config.call_id,
            room_id=self.config.room_id,
            user_id=self.config.user_id,
            marker=self._marker,
            devices=self.devices.to_dict(),
            track_relations=tuple(self._track_relations.values()),
            media_constraints=tuple(self._media_constraints),
            user_media_errors=tuple(self._user_media_errors),
            extension_stats=tuple(self._extension_stats),
            media_devices=tuple(self._media_devices),
            peer_connections=self._snapshot(),
        )

        self._media_constraints.clear()
        self._user_media_errors.clear()
        self._extension_stats.clear()
        self._media_devices.clear()
        self._marker = None
        self._dirty = False
        self._last_version = version

        self.logger.debug(
            f"Sample #{sample.sample_seq} made with {len(sample.peer_connections)} peer connections"
        )
        return sample

    def _snapshot(self) -> Tuple[PeerConnectionSample, ...]:
        return tuple(
            PeerConnectionSample(
                peer_connection_id=pc.collector_id,
                label=pc.label,
                stats=tuple(self._entry_sample(entry) for entry in pc.entries.values()),
            )
            for pc in self._storage.peer_connections()
        )

    def _entry_sample(self, entry: StatsEntry) -> StatsEntrySample:
        return StatsEntrySample(
            stats_type=entry.stats_type.value,
            id=entry.id,
            fields=dict(entry.fields),
            relations=self._storage.relations(entry),
        )

    def close(self):
        """Release the pending state; later calls to :meth:`make` return None."""
        if self._closed:
            return
        self._closed = True
        self._track_relations.clear()
        self._media_constraints.clear()
        self._user_media_errors.clear()
        self._extension_stats.clear()
        self._media_devices.clear()
        self._marker = None

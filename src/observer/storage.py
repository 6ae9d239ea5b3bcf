"""
Stats storage.

Keeps the latest canonical stats of every registered peer connection
collector. Entries are keyed by ``(stats_type, id)`` per collector, are
merged field by field on every sighting and carry created/updated
timestamps in milliseconds. Relations between entries (rtp stream to
sender, candidate pair to candidates, ...) are not stored; they are
resolved from the link fields whenever they are read.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .schemas import Scalar, StatsRecord, StatsType

Clock = Callable[[], float]

# (relation name, link fields tried in order, target types tried in order)
Relation = Tuple[str, Tuple[str, ...], Tuple[StatsType, ...]]

RELATIONS: Dict[StatsType, Tuple[Relation, ...]] = {
    StatsType.OUTBOUND_RTP: (
        ("sender", ("senderId", "trackId"), (StatsType.SENDER,)),
        ("transport", ("transportId",), (StatsType.TRANSPORT,)),
        ("codec", ("codecId",), (StatsType.CODEC,)),
        ("media_source", ("mediaSourceId",), (StatsType.MEDIA_SOURCE,)),
    ),
    StatsType.INBOUND_RTP: (
        ("receiver", ("receiverId", "trackId"), (StatsType.RECEIVER,)),
        ("transport", ("transportId",), (StatsType.TRANSPORT,)),
        ("codec", ("codecId",), (StatsType.CODEC,)),
    ),
    StatsType.SENDER: (
        ("media_source", ("mediaSourceId",), (StatsType.MEDIA_SOURCE,)),
    ),
    StatsType.RECEIVER: (
        ("media_source", ("mediaSourceId",), (StatsType.MEDIA_SOURCE,)),
    ),
    StatsType.CANDIDATE_PAIR: (
        ("transport", ("transportId",), (StatsType.TRANSPORT,)),
        ("local_candidate", ("localCandidateId",), (StatsType.LOCAL_CANDIDATE,)),
        ("remote_candidate", ("remoteCandidateId",), (StatsType.REMOTE_CANDIDATE,)),
    ),
    StatsType.TRANSPORT: (
        ("selected_candidate_pair", ("selectedCandidatePairId",), (StatsType.CANDIDATE_PAIR,)),
        ("local_certificate", ("localCertificateId",), (StatsType.CERTIFICATE,)),
        ("remote_certificate", ("remoteCertificateId",), (StatsType.CERTIFICATE,)),
    ),
    StatsType.LOCAL_CANDIDATE: (
        ("transport", ("transportId",), (StatsType.TRANSPORT,)),
    ),
    StatsType.REMOTE_CANDIDATE: (
        ("transport", ("transportId",), (StatsType.TRANSPORT,)),
    ),
    StatsType.CODEC: (
        ("transport", ("transportId",), (StatsType.TRANSPORT,)),
    ),
}


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class StatsEntry:
    """Latest known values of one stats object of one peer connection."""
    collector_id: str
    stats_type: StatsType
    id: str
    created: float
    updated: float
    fields: Dict[str, Scalar] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[StatsType, str]:
        return self.stats_type, self.id

    def get(self, name: str, default=None):
        return self.fields.get(name, default)

    def merge(self, record: StatsRecord, timestamp: float) -> None:
        """Merge a new sighting; a field reported as None is cleared."""
        for name, value in record.fields.items():
            if value is None:
                self.fields.pop(name, None)
            else:
                self.fields[name] = value
        self.updated = timestamp


@dataclass
class PeerConnectionEntry:
    """A registered collector and the entries collected for it."""
    collector_id: str
    label: Optional[str]
    created: float
    entries: Dict[Tuple[StatsType, str], StatsEntry] = field(default_factory=dict)


class StatsStorage:
    """
    In-memory store of canonical stats, one partition per collector.

    Every mutation bumps :attr:`version`, which lets the sampler tell
    whether anything changed since the previous sample.
    """

    def __init__(self, clock: Optional[Clock] = None, logger: Optional[logging.Logger] = None):
        self._clock = clock or _now_ms
        self.logger = logger or logging.getLogger(__name__)
        self._peer_connections: Dict[str, PeerConnectionEntry] = {}
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def _touch(self):
        self._version += 1

    # Mutations

    def register(self, collector_id: str, label: Optional[str] = None) -> PeerConnectionEntry:
        """Register a collector; registering an existing id only updates its label."""
        pc = self._peer_connections.get(collector_id)
        if pc is not None:
            if label is not None and label != pc.label:
                pc.label = label
                self._touch()
            return pc

        pc = PeerConnectionEntry(collector_id=collector_id, label=label, created=self._clock())
        self._peer_connections[collector_id] = pc
        self._touch()
        self.logger.debug(f"Registered peer connection {collector_id} ({label})")
        return pc

    def unregister(self, collector_id: str) -> bool:
        """Remove a collector together with all of its entries."""
        pc = self._peer_connections.pop(collector_id, None)
        if pc is None:
            return False
        self._touch()
        self.logger.debug(f"Unregistered peer connection {collector_id}, dropped {len(pc.entries)} entries")
        return True

    def update(self, collector_id: str, record: StatsRecord) -> Optional[StatsEntry]:
        """Create or merge the entry of ``record``."""
        pc = self._peer_connections.get(collector_id)
        if pc is None:
            self.logger.warning(
                f"Ignoring {record.stats_type.value} stats {record.id!r} for unregistered collector {collector_id!r}"
            )
            return None

        now = self._clock()
        entry = pc.entries.get((record.stats_type, record.id))
        if entry is None:
            entry = StatsEntry(
                collector_id=collector_id,
                stats_type=record.stats_type,
                id=record.id,
                created=now,
                updated=now,
            )
            pc.entries[entry.key] = entry
        entry.merge(record, now)
        self._touch()
        return entry

    def trim(self, threshold: float) -> int:
        """Remove every entry last updated before ``threshold`` (ms)."""
        removed = 0
        for pc in self._peer_connections.values():
            expired = [key for key, entry in pc.entries.items() if entry.updated < threshold]
            for key in expired:
                del pc.entries[key]
            removed += len(expired)

        if removed:
            self._touch()
            self.logger.debug(f"Trimmed {removed} stats entries older than {threshold}")
        return removed

    def clear(self):
        self._peer_connections.clear()
        self._touch()

    # Reads

    def peer_connections(self) -> List[PeerConnectionEntry]:
        return list(self._peer_connections.values())

    def get_peer_connection(self, collector_id: str) -> Optional[PeerConnectionEntry]:
        return self._peer_connections.get(collector_id)

    def entries(self, collector_id: Optional[str] = None,
                stats_type: Optional[StatsType] = None) -> Iterator[StatsEntry]:
        """Iterate entries, optionally restricted to one collector and one type."""
        if collector_id is None:
            pcs = list(self._peer_connections.values())
        else:
            pc = self._peer_connections.get(collector_id)
            pcs = [pc] if pc is not None else []
        for pc in pcs:
            for entry in list(pc.entries.values()):
                if stats_type is None or entry.stats_type is stats_type:
                    yield entry

    def get_entry(self, collector_id: str, stats_type: StatsType, stats_id: str) -> Optional[StatsEntry]:
        pc = self._peer_connections.get(collector_id)
        if pc is None:
            return None
        return pc.entries.get((stats_type, stats_id))

    def relation(self, entry: StatsEntry, name: str) -> Optional[StatsEntry]:
        """Resolve the named relation of ``entry`` within its collector."""
        for relation_name, link_fields, target_types in RELATIONS.get(entry.stats_type, ()):
            if relation_name != name:
                continue
            for link_field in link_fields:
                target_id = entry.get(link_field)
                if not target_id:
                    continue
                for target_type in target_types:
                    target = self.get_entry(entry.collector_id, target_type, target_id)
                    if target is not None:
                        return target
            return None
        return None

    def relations(self, entry: StatsEntry) -> Dict[str, str]:
        """Ids of every relation of ``entry`` that currently resolves."""
        resolved = {}
        for relation_name, _, _ in RELATIONS.get(entry.stats_type, ()):
            target = self.relation(entry, relation_name)
            if target is not None:
                resolved[relation_name] = target.id
        return resolved


class StatsReader:
    """Read-only view over a :class:`StatsStorage`."""

    def __init__(self, storage: StatsStorage):
        self._storage = storage

    @property
    def version(self) -> int:
        return self._storage.version

    def peer_connections(self) -> List[PeerConnectionEntry]:
        return self._storage.peer_connections()

    def get_peer_connection(self, collector_id: str) -> Optional[PeerConnectionEntry]:
        return self._storage.get_peer_connection(collector_id)

    def entries(self, collector_id: Optional[str] = None,
                stats_type: Optional[StatsType] = None) -> Iterator[StatsEntry]:
        return self._storage.entries(collector_id, stats_type)

    def get_entry(self, collector_id: str, stats_type: StatsType, stats_id: str) -> Optional[StatsEntry]:
        return self._storage.get_entry(collector_id, stats_type, stats_id)

    def relation(self, entry: StatsEntry, name: str) -> Optional[StatsEntry]:
        return self._storage.relation(entry, name)

    def relations(self, entry: StatsEntry) -> Dict[str, str]:
        return self._storage.relations(entry)

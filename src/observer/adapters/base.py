"""
Base adapter and shared normalization steps.

An adapter turns one raw stats report, as returned by a peer connection's
``getStats()``, into a lazy sequence of canonical :class:`StatsRecord`
objects. Dialect-specific adapters subclass :class:`BaseAdapter` and compose
the helpers defined here; no helper inspects which dialect is calling it.
"""

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Iterator, Optional, Set, Tuple

from ..schemas import StatsRecord, StatsType, cast_stats, merge_fields
from ..sdk.exceptions import InvalidInputError

# fields of a remote echo record copied onto the local rtp record it describes
REMOTE_INBOUND_ENRICHMENT = (
    "roundTripTime", "totalRoundTripTime", "fractionLost",
    "roundTripTimeMeasurements", "packetsLost", "jitter",
)
REMOTE_OUTBOUND_ENRICHMENT = (
    "remoteTimestamp", "reportsSent", "roundTripTime", "totalRoundTripTime",
    "roundTripTimeMeasurements",
)

RTP_TYPES = (StatsType.INBOUND_RTP, StatsType.OUTBOUND_RTP)
CANDIDATE_TYPES = (StatsType.LOCAL_CANDIDATE, StatsType.REMOTE_CANDIDATE)
REMOTE_ECHO_TYPES = (StatsType.REMOTE_INBOUND_RTP, StatsType.REMOTE_OUTBOUND_RTP)


def is_stats_report(raw_report: Any) -> bool:
    """Check that ``raw_report`` exposes a callable ``values()``."""
    return raw_report is not None and callable(getattr(raw_report, "values", None))


def to_field_dict(raw_stats: Any) -> Optional[Dict[str, Any]]:
    """Copy one raw stats object into a plain dict.

    Accepts mappings (browser style reports), dataclasses (aiortc style
    reports) and plain objects. Returns None for anything else.
    """
    if raw_stats is None:
        return None
    if isinstance(raw_stats, Mapping):
        return dict(raw_stats)
    if dataclasses.is_dataclass(raw_stats) and not isinstance(raw_stats, type):
        return {f.name: getattr(raw_stats, f.name) for f in dataclasses.fields(raw_stats)}
    if hasattr(raw_stats, "__dict__"):
        return dict(vars(raw_stats))
    return None


def backfill_kind(fields: Dict[str, Any], strip_legacy: bool = False) -> None:
    """Set ``kind`` from the legacy ``mediaType`` field when missing."""
    if fields.get("mediaType") and not fields.get("kind"):
        fields["kind"] = fields["mediaType"]
    if strip_legacy:
        fields.pop("mediaType", None)


def backfill_link(fields: Dict[str, Any], link_field: str, value: Any) -> None:
    """Set ``link_field`` (``senderId``/``receiverId``) when missing."""
    if value and not fields.get(link_field):
        fields[link_field] = value


def backfill_address(fields: Dict[str, Any]) -> None:
    """Set ``address`` from the legacy ``ip`` field and drop ``ip``."""
    ip = fields.pop("ip", None)
    if ip and not fields.get("address"):
        fields["address"] = ip


def strip_fields(fields: Dict[str, Any], names: Iterable[str]) -> None:
    for name in names:
        fields.pop(name, None)


def link_field_for(stats_type: StatsType) -> str:
    return "senderId" if stats_type is StatsType.OUTBOUND_RTP else "receiverId"


def enrich_from_remote(fields: Dict[str, Any], stats_type: StatsType,
                       remotes: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Merge round trip fields of the remote echo record referenced by ``remoteId``."""
    remote = remotes.get(fields.get("remoteId")) if fields.get("remoteId") else None
    if not remote:
        return fields
    names = REMOTE_INBOUND_ENRICHMENT if stats_type is StatsType.OUTBOUND_RTP else REMOTE_OUTBOUND_ENRICHMENT
    auxiliary = {name: remote[name] for name in names if name in remote}
    return merge_fields(auxiliary, fields)


class BaseAdapter(ABC):
    """
    Base class for dialect adapters.

    ``adapt`` returns a generator: it is lazy, finite and one-shot.
    Iterating the returned object a second time yields nothing; call
    ``adapt`` again with a fresh report instead.
    """

    name = "base"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def adapt(self, raw_report: Any) -> Iterator[StatsRecord]:
        """Convert one raw stats report into canonical records."""
        raise NotImplementedError

    def _require_report(self, raw_report: Any) -> None:
        if not is_stats_report(raw_report):
            raise InvalidInputError(self.name, raw_report)

    def _typed_values(self, raw_report: Any) -> Iterator[Tuple[StatsType, Dict[str, Any]]]:
        """Yield (type, fields) for every raw record with a known type.

        Records without a string ``type`` or with a type outside the
        canonical set are skipped.
        """
        for raw_stats in raw_report.values():
            fields = to_field_dict(raw_stats)
            if fields is None:
                continue
            raw_type = fields.get("type")
            if not raw_type or not isinstance(raw_type, str):
                continue
            stats_type = StatsType.parse(raw_type)
            if stats_type is None:
                self.logger.debug(f"{self.name}: ignoring unsupported stats type {raw_type!r}")
                continue
            yield stats_type, fields

    def _remote_echoes(self, raw_report: Any) -> Dict[str, Dict[str, Any]]:
        remotes = {}
        for stats_type, fields in self._typed_values(raw_report):
            if stats_type in REMOTE_ECHO_TYPES and fields.get("id"):
                remotes[fields["id"]] = fields
        return remotes

    @staticmethod
    def _emit(stats_type: StatsType, fields: Dict[str, Any],
              seen: Set[Tuple[StatsType, str]]) -> Optional[StatsRecord]:
        """Cast ``fields`` unless a record with the same type and id was already emitted."""
        record = cast_stats(stats_type, fields)
        if record is None:
            return None
        key = (record.stats_type, record.id)
        if key in seen:
            return None
        seen.add(key)
        return record

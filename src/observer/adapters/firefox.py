"""
Adapter for Firefox (94+) and Safari.

These engines report no separate track objects, so the rtp record itself is
the anchor for the synthesized sender and receiver records. Their id is the
rtp record's ``trackId`` when one is reported, the rtp id otherwise.
"""

from typing import Any, Dict, Iterator, Set, Tuple

from ..schemas import StatsRecord, StatsType
from .base import (
    BaseAdapter,
    CANDIDATE_TYPES,
    REMOTE_ECHO_TYPES,
    RTP_TYPES,
    backfill_address,
    backfill_kind,
    backfill_link,
    enrich_from_remote,
    is_stats_report,
    link_field_for,
)


class Firefox94Adapter(BaseAdapter):
    """Firefox 94+ dialect. Malformed reports are logged, not raised."""

    name = "firefox94"

    def adapt(self, raw_report: Any) -> Iterator[StatsRecord]:
        if not is_stats_report(raw_report):
            self.logger.warning(
                f"{self.name}: not a stats report object, got {type(raw_report).__name__}"
            )
            return iter(())
        return self._generate(raw_report)

    def _generate(self, raw_report: Any) -> Iterator[StatsRecord]:
        remotes = self._remote_echoes(raw_report)
        senders: Dict[str, Dict[str, Any]] = {}
        receivers: Dict[str, Dict[str, Any]] = {}
        seen: Set[Tuple[StatsType, str]] = set()
        for stats_type, fields in self._typed_values(raw_report):
            if stats_type is StatsType.TRACK or stats_type in REMOTE_ECHO_TYPES:
                continue
            if stats_type in RTP_TYPES:
                fields = enrich_from_remote(fields, stats_type, remotes)
                backfill_kind(fields)
                stats_id = fields.get("id")
                if stats_id:
                    link_field = link_field_for(stats_type)
                    backfill_link(fields, link_field, fields.get("trackId") or stats_id)
                    anchor_id = fields[link_field]
                    anchors = senders if stats_type is StatsType.OUTBOUND_RTP else receivers
                    anchors.setdefault(anchor_id, {**fields, "id": anchor_id})
            elif stats_type in CANDIDATE_TYPES:
                backfill_address(fields)

            record = self._emit(stats_type, fields, seen)
            if record is not None:
                yield record

        for stats_type, anchors in ((StatsType.SENDER, senders), (StatsType.RECEIVER, receivers)):
            for rtp_fields in anchors.values():
                record = self._emit(stats_type, rtp_fields, seen)
                if record is not None:
                    yield record

"""
Adapters for Chromium based browsers.

Chromium reports a separate ``track`` stats object next to every rtp
stream. Up to version 96 the track is matched to its rtp stream through the
SSRC; later versions reference it through the rtp record's ``trackId``.
"""

from typing import Any, Dict, Iterator, Set, Tuple

from ..schemas import StatsRecord, StatsType, merge_fields
from .base import (
    BaseAdapter,
    CANDIDATE_TYPES,
    REMOTE_ECHO_TYPES,
    RTP_TYPES,
    backfill_address,
    backfill_kind,
    backfill_link,
    enrich_from_remote,
    link_field_for,
    strip_fields,
)


class Chrome86Adapter(BaseAdapter):
    """Chrome 86+ dialect: tracks correlated by ``trackId``."""

    name = "chrome86"

    def adapt(self, raw_report: Any) -> Iterator[StatsRecord]:
        self._require_report(raw_report)
        return self._generate(raw_report)

    def _generate(self, raw_report: Any) -> Iterator[StatsRecord]:
        tracks: Dict[str, Dict[str, Any]] = {}
        for stats_type, fields in self._typed_values(raw_report):
            if stats_type is StatsType.TRACK and fields.get("id"):
                tracks[fields["id"]] = fields
        remotes = self._remote_echoes(raw_report)

        senders: Dict[str, Dict[str, Any]] = {}
        receivers: Dict[str, Dict[str, Any]] = {}
        seen: Set[Tuple[StatsType, str]] = set()
        for stats_type, fields in self._typed_values(raw_report):
            if stats_type is StatsType.TRACK or stats_type in REMOTE_ECHO_TYPES:
                continue
            if stats_type in RTP_TYPES:
                track_id = fields.get("trackId")
                track = tracks.get(track_id) if track_id else None
                if track is not None:
                    fields = merge_fields(track, fields)
                    anchors = senders if stats_type is StatsType.OUTBOUND_RTP else receivers
                    anchors.setdefault(track["id"], track)
                fields = enrich_from_remote(fields, stats_type, remotes)
                backfill_kind(fields)
                backfill_link(fields, link_field_for(stats_type), track_id)
            elif stats_type in CANDIDATE_TYPES:
                backfill_address(fields)

            record = self._emit(stats_type, fields, seen)
            if record is not None:
                yield record

        for stats_type, anchors in ((StatsType.SENDER, senders), (StatsType.RECEIVER, receivers)):
            for track in anchors.values():
                record = self._emit(stats_type, track, seen)
                if record is not None:
                    yield record


class Chrome86To96Adapter(BaseAdapter):
    """Chrome 86-96 dialect: tracks correlated by SSRC."""

    name = "chrome86_96"

    def adapt(self, raw_report: Any) -> Iterator[StatsRecord]:
        self._require_report(raw_report)
        return self._generate(raw_report)

    def _generate(self, raw_report: Any) -> Iterator[StatsRecord]:
        tracks: Dict[Any, Dict[str, Any]] = {}
        for stats_type, fields in self._typed_values(raw_report):
            if stats_type is StatsType.TRACK and fields.get("ssrc"):
                tracks[fields["ssrc"]] = fields
        remotes = self._remote_echoes(raw_report)

        senders: Dict[str, Dict[str, Any]] = {}
        receivers: Dict[str, Dict[str, Any]] = {}
        seen: Set[Tuple[StatsType, str]] = set()
        for stats_type, fields in self._typed_values(raw_report):
            if stats_type is StatsType.TRACK or stats_type in REMOTE_ECHO_TYPES:
                continue
            if stats_type in RTP_TYPES:
                ssrc = fields.get("ssrc")
                track = tracks.get(ssrc) if ssrc else None
                if track is not None:
                    fields = merge_fields(track, fields)
                    if track.get("id"):
                        anchors = senders if stats_type is StatsType.OUTBOUND_RTP else receivers
                        anchors.setdefault(track["id"], track)
                        backfill_link(fields, link_field_for(stats_type), track["id"])
                fields = enrich_from_remote(fields, stats_type, remotes)
                backfill_kind(fields, strip_legacy=True)
                strip_fields(fields, ("trackId",))
            elif stats_type is StatsType.LOCAL_CANDIDATE:
                backfill_address(fields)
                strip_fields(fields, ("isRemote", "networkType"))
            elif stats_type is StatsType.REMOTE_CANDIDATE:
                backfill_address(fields)
                strip_fields(fields, ("isRemote",))

            record = self._emit(stats_type, fields, seen)
            if record is not None:
                yield record

        for stats_type, anchors in ((StatsType.SENDER, senders), (StatsType.RECEIVER, receivers)):
            for track in anchors.values():
                record = self._emit(stats_type, track, seen)
                if record is not None:
                    yield record

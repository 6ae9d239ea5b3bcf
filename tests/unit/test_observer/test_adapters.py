"""
Unit tests for the stats report adapters.

Tests dialect normalization (merging, backfilling, stripping), sender and
receiver synthesis, remote echo enrichment, input validation and adapter
selection.
"""

import datetime
import logging
from dataclasses import dataclass

import pytest

from observer.adapters import (
    Chrome86Adapter,
    Chrome86To96Adapter,
    Firefox94Adapter,
    create_adapter,
)
from observer.schemas import StatsType, merge_fields
from observer.sdk.config_manager import AdapterConfig
from observer.sdk.exceptions import InvalidInputError


def by_key(records):
    return {(r.stats_type, r.id): r for r in records}


class TestMergeFields:
    """Test the auxiliary-then-primary merge."""

    def test_primary_overrides_auxiliary(self):
        merged = merge_fields({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert merged == {"a": 1, "b": 3, "c": 4}

    def test_inputs_untouched(self):
        auxiliary = {"a": 1}
        primary = {"a": 2}
        merge_fields(auxiliary, primary)
        assert auxiliary == {"a": 1}
        assert primary == {"a": 2}


class TestChrome86Adapter:
    """Test the trackId based Chrome dialect."""

    def test_outbound_merged_with_track(self, chrome86_report):
        records = by_key(Chrome86Adapter().adapt(chrome86_report))
        outbound = records[(StatsType.OUTBOUND_RTP, "OT01V111")]

        # track fields under the rtp fields, rtp wins on conflicts
        assert outbound.get("frameWidth") == 640
        assert outbound.get("frameHeight") == 480
        assert outbound.get("framesSent") == 7
        assert outbound.get("packetsSent") == 10

    def test_kind_and_sender_id_backfilled(self, chrome86_report):
        records = by_key(Chrome86Adapter().adapt(chrome86_report))
        outbound = records[(StatsType.OUTBOUND_RTP, "OT01V111")]

        assert outbound.get("kind") == "video"
        assert outbound.get("senderId") == "t1"
        assert "mediaType" not in outbound.fields

    def test_sender_synthesized_once(self, chrome86_report):
        records = list(Chrome86Adapter().adapt(chrome86_report))
        senders = [r for r in records if r.stats_type is StatsType.SENDER]

        assert len(senders) == 1
        assert senders[0].id == "t1"
        assert senders[0].get("trackIdentifier") == "video-1"
        assert senders[0].get("framesSent") == 5
        assert not [r for r in records if r.stats_type is StatsType.RECEIVER]

    def test_track_and_remote_echo_never_yielded(self, chrome86_report):
        types = {r.stats_type for r in Chrome86Adapter().adapt(chrome86_report)}
        assert StatsType.TRACK not in types
        assert StatsType.REMOTE_INBOUND_RTP not in types
        assert StatsType.REMOTE_OUTBOUND_RTP not in types

    def test_remote_echo_enriches_local_record(self, chrome86_report):
        records = by_key(Chrome86Adapter().adapt(chrome86_report))
        outbound = records[(StatsType.OUTBOUND_RTP, "OT01V111")]
        assert outbound.get("roundTripTime") == 0.05
        assert outbound.get("packetsLost") == 2

    def test_uncorrelated_inbound_yielded_once(self, chrome86_report):
        records = list(Chrome86Adapter().adapt(chrome86_report))
        inbound = [r for r in records if r.stats_type is StatsType.INBOUND_RTP]

        assert len(inbound) == 1
        assert inbound[0].id == "IT01V222"
        assert inbound[0].get("packetsReceived") == 42
        assert inbound[0].get("receiverId") is None

    def test_candidate_address_backfilled(self, chrome86_report):
        records = by_key(Chrome86Adapter().adapt(chrome86_report))
        candidate = records[(StatsType.LOCAL_CANDIDATE, "L1")]
        assert candidate.get("address") == "10.0.0.1"
        assert "ip" not in candidate.fields
        assert "networkType" not in candidate.fields

    def test_unknown_types_dropped(self, chrome86_report):
        records = list(Chrome86Adapter().adapt(chrome86_report))
        assert len(records) == 6
        assert all(r.id != "X1" for r in records)

    def test_correlated_outbound_scenario(self, make_report):
        """One outbound-rtp correlated to track t1 gives the rtp record and sender t1."""
        report = make_report([
            {"id": "t1", "type": "track", "ssrc": 111},
            {"id": "OT01", "type": "outbound-rtp", "ssrc": 111, "trackId": "t1", "mediaType": "audio"},
        ])
        records = list(Chrome86Adapter().adapt(report))

        assert [(r.stats_type, r.id) for r in records] == [
            (StatsType.OUTBOUND_RTP, "OT01"),
            (StatsType.SENDER, "t1"),
        ]
        assert records[0].get("kind") == "audio"
        assert records[0].get("senderId") == "t1"

    def test_duplicate_records_yielded_once(self, make_report):
        report = make_report([
            {"id": "C1", "type": "codec", "mimeType": "audio/opus"},
            {"id": "C1", "type": "codec", "mimeType": "audio/opus"},
        ])
        assert len(list(Chrome86Adapter().adapt(report))) == 1

    def test_non_scalar_fields_dropped(self, make_report):
        report = make_report([
            {"id": "C1", "type": "codec", "mimeType": "video/VP8", "clockRate": 90000,
             "sdpFmtpLine": {"nested": True}},
        ])
        record = next(iter(Chrome86Adapter().adapt(report)))
        assert record.get("clockRate") == 90000
        assert "sdpFmtpLine" not in record.fields

    def test_datetime_timestamp_converted(self, make_report):
        moment = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
        report = make_report([{"id": "T1", "type": "transport", "timestamp": moment}])
        record = next(iter(Chrome86Adapter().adapt(report)))
        assert record.get("timestamp") == moment.timestamp() * 1000

    def test_dataclass_stats_accepted(self):
        @dataclass
        class CodecStats:
            id: str
            type: str
            mimeType: str
            clockRate: int

        class Report:
            def values(self):
                return [CodecStats("C1", "codec", "audio/opus", 48000)]

        record = next(iter(Chrome86Adapter().adapt(Report())))
        assert record.stats_type is StatsType.CODEC
        assert record.get("mimeType") == "audio/opus"

    def test_generator_is_one_shot(self, chrome86_report):
        records = Chrome86Adapter().adapt(chrome86_report)
        assert len(list(records)) == 6
        assert list(records) == []

    def test_invalid_input_raises(self):
        with pytest.raises(InvalidInputError) as exc_info:
            Chrome86Adapter().adapt(None)
        assert exc_info.value.details["adapter"] == "chrome86"

    def test_invalid_input_raises_eagerly(self):
        with pytest.raises(InvalidInputError):
            Chrome86Adapter().adapt(object())


class TestChrome86To96Adapter:
    """Test the SSRC based Chrome dialect."""

    def test_outbound_correlated_by_ssrc(self, chrome86_96_report):
        records = by_key(Chrome86To96Adapter().adapt(chrome86_96_report))
        outbound = records[(StatsType.OUTBOUND_RTP, "RTCOutboundRTPAudioStream_111")]

        assert outbound.get("kind") == "audio"
        assert outbound.get("senderId") == "RTCMediaStreamTrack_sender_1"
        assert outbound.get("packetsSent") == 10
        assert "trackId" not in outbound.fields
        assert "mediaType" not in outbound.fields

    def test_sender_from_track(self, chrome86_96_report):
        records = by_key(Chrome86To96Adapter().adapt(chrome86_96_report))
        sender = records[(StatsType.SENDER, "RTCMediaStreamTrack_sender_1")]
        assert sender.get("audioLevel") == 0.2
        assert sender.get("trackIdentifier") == "audio-1"

    def test_candidates_cleaned(self, chrome86_96_report):
        records = by_key(Chrome86To96Adapter().adapt(chrome86_96_report))
        local = records[(StatsType.LOCAL_CANDIDATE, "RTCIceCandidate_L1")]
        remote = records[(StatsType.REMOTE_CANDIDATE, "RTCIceCandidate_R1")]

        assert local.get("address") == "10.0.0.1"
        assert remote.get("address") == "192.0.2.7"
        for candidate in (local, remote):
            assert "isRemote" not in candidate.fields
            assert "ip" not in candidate.fields

    def test_inbound_without_track_yielded(self, make_report):
        report = make_report([
            {"id": "IN1", "type": "inbound-rtp", "ssrc": 999, "mediaType": "video"},
        ])
        records = list(Chrome86To96Adapter().adapt(report))
        assert len(records) == 1
        assert records[0].get("kind") == "video"

    def test_inbound_receiver_synthesized(self, make_report):
        report = make_report([
            {"id": "TR2", "type": "track", "ssrc": 222, "kind": "video", "framesDecoded": 30},
            {"id": "IN2", "type": "inbound-rtp", "ssrc": 222, "packetsReceived": 8},
        ])
        records = by_key(Chrome86To96Adapter().adapt(report))
        assert records[(StatsType.INBOUND_RTP, "IN2")].get("receiverId") == "TR2"
        assert records[(StatsType.RECEIVER, "TR2")].get("framesDecoded") == 30

    def test_invalid_input_raises(self):
        with pytest.raises(InvalidInputError):
            Chrome86To96Adapter().adapt(42)


class TestFirefox94Adapter:
    """Test the trackless dialect."""

    def test_rtp_anchors_itself(self, firefox_report):
        records = by_key(Firefox94Adapter().adapt(firefox_report))

        outbound = records[(StatsType.OUTBOUND_RTP, "{out-1}")]
        inbound = records[(StatsType.INBOUND_RTP, "{in-1}")]
        assert outbound.get("senderId") == "{out-1}"
        assert inbound.get("receiverId") == "{in-1}"
        assert inbound.get("kind") == "audio"

    def test_sender_and_receiver_synthesized(self, firefox_report):
        records = by_key(Firefox94Adapter().adapt(firefox_report))

        assert records[(StatsType.SENDER, "{out-1}")].get("frameWidth") == 640
        assert records[(StatsType.RECEIVER, "{in-1}")].get("kind") == "audio"
        assert len(records) == 5

    def test_remote_echoes_enrich(self, firefox_report):
        records = by_key(Firefox94Adapter().adapt(firefox_report))
        assert records[(StatsType.OUTBOUND_RTP, "{out-1}")].get("roundTripTime") == 0.03
        inbound = records[(StatsType.INBOUND_RTP, "{in-1}")]
        assert inbound.get("remoteTimestamp") == 12345.0
        assert inbound.get("reportsSent") == 3

    def test_track_id_preferred_for_links(self, make_report):
        report = make_report([
            {"id": "OUT1", "type": "outbound-rtp", "ssrc": 1, "kind": "audio", "trackId": "T1"},
            {"id": "IN1", "type": "inbound-rtp", "ssrc": 2, "kind": "audio"},
        ])
        records = by_key(Firefox94Adapter().adapt(report))

        assert records[(StatsType.OUTBOUND_RTP, "OUT1")].get("senderId") == "T1"
        assert records[(StatsType.INBOUND_RTP, "IN1")].get("receiverId") == "IN1"
        assert (StatsType.SENDER, "T1") in records
        assert (StatsType.RECEIVER, "IN1") in records

    def test_non_finite_values_dropped(self, make_report):
        report = make_report([
            {"id": "IN1", "type": "inbound-rtp", "ssrc": 2, "kind": "audio",
             "jitter": float("nan"), "bytesReceived": float("inf"), "packetsReceived": 7},
        ])
        inbound = by_key(Firefox94Adapter().adapt(report))[(StatsType.INBOUND_RTP, "IN1")]

        assert "jitter" not in inbound.fields
        assert "bytesReceived" not in inbound.fields
        assert inbound.get("packetsReceived") == 7

    def test_invalid_input_logged(self, caplog, test_logger):
        adapter = Firefox94Adapter(test_logger)
        with caplog.at_level(logging.WARNING):
            records = list(adapter.adapt(None))
        assert records == []
        assert "not a stats report" in caplog.text


class TestCreateAdapter:
    """Test adapter selection from browser facts."""

    @pytest.mark.parametrize("browser,version,expected", [
        ("chrome", "90.0.4430.93", Chrome86To96Adapter),
        ("Edge", "96", Chrome86To96Adapter),
        ("opera", "86.1", Chrome86To96Adapter),
        ("chrome", "97.0.1", Chrome86Adapter),
        ("chrome", "85", Chrome86Adapter),
        ("chrome", "beta", Chrome86Adapter),
        ("firefox", "94.0", Firefox94Adapter),
        ("safari", "15.2", Firefox94Adapter),
        ("unknown", None, Chrome86Adapter),
    ])
    def test_selection(self, browser, version, expected):
        adapter = create_adapter(AdapterConfig(browser_type=browser, browser_version=version))
        assert type(adapter) is expected

    def test_default_without_config(self):
        assert isinstance(create_adapter(), Chrome86Adapter)

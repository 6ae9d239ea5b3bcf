"""
Fixtures for the observer pipeline tests: raw reports in the three browser
dialects, a controllable clock and a storage bound to it.
"""

from typing import Any, Dict, List

import pytest

from observer.storage import StatsStorage


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


class RawReport:
    """Stand-in for a browser RTCStatsReport: only ``values()`` is used."""

    def __init__(self, stats: List[Dict[str, Any]]):
        self._stats = list(stats)

    def values(self):
        return list(self._stats)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(clock) -> StatsStorage:
    return StatsStorage(clock)


@pytest.fixture
def chrome86_report() -> RawReport:
    """Chrome 97+ style report: rtp records point at their track through trackId."""
    return RawReport([
        {"id": "t1", "type": "track", "trackIdentifier": "video-1", "ssrc": 111,
         "frameWidth": 640, "frameHeight": 480, "framesSent": 5},
        {"id": "OT01V111", "type": "outbound-rtp", "ssrc": 111, "trackId": "t1",
         "mediaType": "video", "packetsSent": 10, "framesSent": 7, "remoteId": "RI01V111"},
        {"id": "RI01V111", "type": "remote-inbound-rtp", "ssrc": 111, "localId": "OT01V111",
         "roundTripTime": 0.05, "packetsLost": 2},
        {"id": "IT01V222", "type": "inbound-rtp", "ssrc": 222, "kind": "video",
         "packetsReceived": 42},
        {"id": "CP01", "type": "candidate-pair", "localCandidateId": "L1",
         "remoteCandidateId": "R1", "state": "succeeded", "transportId": "T01"},
        {"id": "L1", "type": "local-candidate", "ip": "10.0.0.1", "port": 5000,
         "networkType": "wifi", "transportId": "T01"},
        {"id": "T01", "type": "transport", "selectedCandidatePairId": "CP01",
         "dtlsState": "connected"},
        {"id": "X1", "type": "ice-server", "url": "stun:example.org"},
    ])


@pytest.fixture
def chrome86_96_report() -> RawReport:
    """Chrome 86-96 style report: rtp records and tracks share the SSRC."""
    return RawReport([
        {"id": "RTCMediaStreamTrack_sender_1", "type": "track", "ssrc": 111,
         "trackIdentifier": "audio-1", "kind": "audio", "audioLevel": 0.2},
        {"id": "RTCOutboundRTPAudioStream_111", "type": "outbound-rtp", "ssrc": 111,
         "mediaType": "audio", "trackId": "RTCMediaStreamTrack_sender_1", "packetsSent": 10},
        {"id": "RTCIceCandidate_L1", "type": "local-candidate", "ip": "10.0.0.1",
         "port": 5000, "isRemote": False, "networkType": "wifi"},
        {"id": "RTCIceCandidate_R1", "type": "remote-candidate", "ip": "192.0.2.7",
         "port": 6000, "isRemote": True},
    ])


@pytest.fixture
def firefox_report() -> RawReport:
    """Firefox style report: no track objects at all."""
    return RawReport([
        {"id": "{out-1}", "type": "outbound-rtp", "ssrc": 111, "kind": "video",
         "packetsSent": 10, "frameWidth": 640, "remoteId": "{rin-1}"},
        {"id": "{rin-1}", "type": "remote-inbound-rtp", "ssrc": 111,
         "localId": "{out-1}", "roundTripTime": 0.03},
        {"id": "{in-1}", "type": "inbound-rtp", "ssrc": 222, "mediaType": "audio",
         "packetsReceived": 5, "remoteId": "{rout-1}"},
        {"id": "{rout-1}", "type": "remote-outbound-rtp", "ssrc": 222,
         "remoteTimestamp": 12345.0, "reportsSent": 3},
        {"id": "{cand-1}", "type": "local-candidate", "address": "10.0.0.1", "port": 5000},
    ])


@pytest.fixture
def make_report():
    """Factory building a raw report from a list of stats dicts."""
    return RawReport

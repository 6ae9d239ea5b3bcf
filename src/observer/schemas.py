"""
Canonical WebRTC stats schema.

Raw stats reports differ between browser engines and versions. Every
adapter funnels its output through :func:`cast_stats`, which keeps only the
fields declared for the record's type, so the shape that reaches storage is
closed and identical for all dialects.
"""

import datetime
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool]


class StatsType(Enum):
    """Canonical stats record types."""
    TRACK = "track"
    INBOUND_RTP = "inbound-rtp"
    OUTBOUND_RTP = "outbound-rtp"
    REMOTE_INBOUND_RTP = "remote-inbound-rtp"
    REMOTE_OUTBOUND_RTP = "remote-outbound-rtp"
    MEDIA_SOURCE = "media-source"
    SENDER = "sender"
    RECEIVER = "receiver"
    LOCAL_CANDIDATE = "local-candidate"
    REMOTE_CANDIDATE = "remote-candidate"
    CANDIDATE_PAIR = "candidate-pair"
    CODEC = "codec"
    TRANSPORT = "transport"
    CERTIFICATE = "certificate"
    DATA_CHANNEL = "data-channel"
    PEER_CONNECTION = "peer-connection"

    @classmethod
    def parse(cls, value: Any) -> Optional['StatsType']:
        """Return the member for a raw ``type`` value, or None if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


_RTP_STREAM_FIELDS = frozenset({
    "timestamp", "ssrc", "kind", "transportId", "codecId",
})

_TRACK_FIELDS = frozenset({
    "timestamp", "trackIdentifier", "remoteSource", "ended", "detached",
    "kind", "mediaSourceId", "priority",
    "frameWidth", "frameHeight", "framesPerSecond", "framesCaptured",
    "framesSent", "hugeFramesSent", "keyFramesSent", "framesReceived",
    "framesDecoded", "framesDropped", "framesCorrupted", "partialFramesLost",
    "fullFramesLost", "freezeCount", "pauseCount", "totalFreezesDuration",
    "totalPausesDuration", "totalFramesDuration", "sumOfSquaredFramesDuration",
    "audioLevel", "totalAudioEnergy", "voiceActivityFlag", "echoReturnLoss",
    "echoReturnLossEnhancement", "totalSamplesSent", "totalSamplesReceived",
    "totalSamplesDuration", "samplesDurationDuringVoiceActivity",
    "concealedSamples", "silentConcealedSamples", "concealmentEvents",
    "insertedSamplesForDeceleration", "removedSamplesForAcceleration",
    "jitterBufferDelay", "jitterBufferEmittedCount",
})

STATS_FIELDS: Dict[StatsType, FrozenSet[str]] = {
    StatsType.TRACK: _TRACK_FIELDS,
    StatsType.SENDER: _TRACK_FIELDS,
    StatsType.RECEIVER: _TRACK_FIELDS,
    StatsType.INBOUND_RTP: _RTP_STREAM_FIELDS | {
        "trackId", "receiverId", "remoteId", "mid", "trackIdentifier",
        "packetsReceived", "packetsLost", "packetsDiscarded",
        "packetsRepaired", "packetsDuplicated", "jitter", "bytesReceived",
        "headerBytesReceived", "lastPacketReceivedTimestamp",
        "estimatedPlayoutTimestamp", "fecPacketsReceived",
        "fecPacketsDiscarded", "firCount", "pliCount", "nackCount", "sliCount",
        "qpSum", "totalDecodeTime", "totalInterFrameDelay",
        "totalSquaredInterFrameDelay", "decoderImplementation",
        "framesDecoded", "keyFramesDecoded", "framesReceived", "framesDropped",
        "frameWidth", "frameHeight", "framesPerSecond", "jitterBufferDelay",
        "jitterBufferEmittedCount", "totalSamplesReceived", "concealedSamples",
        "silentConcealedSamples", "concealmentEvents",
        "insertedSamplesForDeceleration", "removedSamplesForAcceleration",
        "audioLevel", "totalAudioEnergy", "totalSamplesDuration",
        "remoteTimestamp", "reportsSent", "roundTripTime",
        "totalRoundTripTime", "roundTripTimeMeasurements",
    },
    StatsType.OUTBOUND_RTP: _RTP_STREAM_FIELDS | {
        "trackId", "senderId", "remoteId", "mediaSourceId", "mid", "rid",
        "packetsSent", "bytesSent", "headerBytesSent",
        "retransmittedPacketsSent", "retransmittedBytesSent",
        "targetBitrate", "totalEncodedBytesTarget", "frameWidth",
        "frameHeight", "framesPerSecond", "framesSent", "hugeFramesSent",
        "framesEncoded", "keyFramesEncoded", "qpSum", "totalEncodeTime",
        "totalPacketSendDelay", "averageRtcpInterval",
        "qualityLimitationReason", "qualityLimitationResolutionChanges",
        "encoderImplementation", "firCount", "pliCount", "nackCount",
        "sliCount", "active", "totalSamplesSent", "samplesEncodedWithSilk",
        "samplesEncodedWithCelt", "voiceActivityFlag", "packetsLost",
        "jitter", "roundTripTime", "totalRoundTripTime", "fractionLost",
        "roundTripTimeMeasurements",
    },
    StatsType.REMOTE_INBOUND_RTP: _RTP_STREAM_FIELDS | {
        "localId", "packetsReceived", "packetsLost", "jitter",
        "roundTripTime", "totalRoundTripTime", "fractionLost",
        "roundTripTimeMeasurements",
    },
    StatsType.REMOTE_OUTBOUND_RTP: _RTP_STREAM_FIELDS | {
        "localId", "packetsSent", "bytesSent", "remoteTimestamp",
        "reportsSent", "roundTripTime", "totalRoundTripTime",
        "roundTripTimeMeasurements",
    },
    StatsType.MEDIA_SOURCE: frozenset({
        "timestamp", "trackIdentifier", "kind", "relayedSource",
        "audioLevel", "totalAudioEnergy", "totalSamplesDuration",
        "echoReturnLoss", "echoReturnLossEnhancement", "droppedSamplesDuration",
        "droppedSamplesEvents", "totalCaptureDelay", "totalSamplesCaptured",
        "width", "height", "bitDepth", "frames", "framesPerSecond",
    }),
    StatsType.LOCAL_CANDIDATE: frozenset({
        "timestamp", "transportId", "address", "port", "protocol",
        "candidateType", "priority", "url", "relayProtocol",
    }),
    StatsType.REMOTE_CANDIDATE: frozenset({
        "timestamp", "transportId", "address", "port", "protocol",
        "candidateType", "priority", "url", "relayProtocol",
    }),
    StatsType.CANDIDATE_PAIR: frozenset({
        "timestamp", "transportId", "localCandidateId", "remoteCandidateId",
        "state", "nominated", "packetsSent", "packetsReceived", "bytesSent",
        "bytesReceived", "lastPacketSentTimestamp",
        "lastPacketReceivedTimestamp", "firstRequestTimestamp",
        "lastRequestTimestamp", "lastResponseTimestamp", "totalRoundTripTime",
        "currentRoundTripTime", "availableOutgoingBitrate",
        "availableIncomingBitrate", "circuitBreakerTriggerCount",
        "requestsReceived", "requestsSent", "responsesReceived",
        "responsesSent", "retransmissionsReceived", "retransmissionsSent",
        "consentRequestsSent", "consentExpiredTimestamp", "packetsDiscardedOnSend",
        "bytesDiscardedOnSend",
    }),
    StatsType.CODEC: frozenset({
        "timestamp", "payloadType", "codecType", "transportId", "mimeType",
        "clockRate", "channels", "sdpFmtpLine",
    }),
    StatsType.TRANSPORT: frozenset({
        "timestamp", "packetsSent", "packetsReceived", "bytesSent",
        "bytesReceived", "rtcpTransportStatsId", "iceRole", "iceLocalUsernameFragment",
        "dtlsState", "iceState", "selectedCandidatePairId", "localCertificateId",
        "remoteCertificateId", "tlsVersion", "dtlsCipher", "srtpCipher",
        "tlsGroup", "selectedCandidatePairChanges",
    }),
    StatsType.CERTIFICATE: frozenset({
        "timestamp", "fingerprint", "fingerprintAlgorithm", "base64Certificate",
        "issuerCertificateId",
    }),
    StatsType.DATA_CHANNEL: frozenset({
        "timestamp", "label", "protocol", "dataChannelIdentifier", "state",
        "messagesSent", "bytesSent", "messagesReceived", "bytesReceived",
    }),
    StatsType.PEER_CONNECTION: frozenset({
        "timestamp", "dataChannelsOpened", "dataChannelsClosed",
        "dataChannelsRequested", "dataChannelsAccepted",
    }),
}


@dataclass(frozen=True)
class StatsRecord:
    """A normalized, dialect independent stats record."""
    stats_type: StatsType
    id: str
    fields: Dict[str, Optional[Scalar]] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        result = {"type": self.stats_type.value, "id": self.id}
        result.update(self.fields)
        return result


def to_scalar(value: Any) -> Any:
    """Convert a raw field value to a canonical scalar.

    ``datetime`` values become epoch milliseconds. Returns ``...`` (Ellipsis)
    for values that have no scalar representation, NaN and infinities included.
    """
    if isinstance(value, float) and not math.isfinite(value):
        return ...
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime.datetime):
        return value.timestamp() * 1000
    if isinstance(value, Enum):
        return to_scalar(value.value)
    return ...


def merge_fields(auxiliary: Mapping[str, Any], primary: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge two field bags: auxiliary fields first, primary fields overwrite.

    This is the single place where the primary-wins tie-break is applied.
    """
    merged = dict(auxiliary)
    merged.update(primary)
    return merged


def cast_stats(stats_type: StatsType, raw: Mapping[str, Any]) -> Optional[StatsRecord]:
    """Build a :class:`StatsRecord` keeping only the fields declared for ``stats_type``.

    Returns None when the raw fields carry no usable id.
    """
    stats_id = raw.get("id")
    if stats_id is None or stats_id == "":
        logger.debug(f"Dropping {stats_type.value} stats without an id")
        return None

    allowed = STATS_FIELDS[stats_type]
    fields: Dict[str, Optional[Scalar]] = {}
    for name, value in raw.items():
        if name in ("id", "type"):
            continue
        if name not in allowed:
            continue
        scalar = to_scalar(value)
        if scalar is ...:
            logger.debug(f"Dropping non-scalar field {name!r} of {stats_type.value} {stats_id}")
            continue
        fields[name] = scalar
    return StatsRecord(stats_type=stats_type, id=str(stats_id), fields=fields)

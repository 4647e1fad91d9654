"""
Data model of the quality statistics engine.

Input models describe the raw per peer connection samples gathered by the
stats collector; they are parsed from the collector's camelCase JSON through
``from_dict``. Output models are the derived aggregates; ``to_dict`` turns
them back into the camelCase structure consumed by the feature publisher and
leaves out every field whose value is ``None``.

Nothing here is mutated once an aggregation pass has built it.
"""

from dataclasses import dataclass, field, fields
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional

from sdk.exceptions import ValidationError


def _camel_case(name: str) -> str:
    head, *tail = name.split('_')
    return head + ''.join(part.capitalize() for part in tail)


def _serialize(value: Any) -> Any:
    if isinstance(value, SerializableRecord):
        return value.to_dict()
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    return value


class SerializableRecord:
    """Mixin giving dataclasses a camelCase ``to_dict`` without absent fields."""

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for record_field in fields(self):
            value = getattr(self, record_field.name)
            if value is None:
                continue
            key = record_field.metadata.get('key', _camel_case(record_field.name))
            result[key] = _serialize(value)
        return result


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _number_series(raw: Mapping[str, Any], key: str, owner: str) -> List[float]:
    values = raw.get(key)
    if values is None:
        return []
    if not isinstance(values, (list, tuple)):
        raise ValidationError(f"{owner}.{key}", values, "must be a list of numbers")
    for value in values:
        if not _is_number(value):
            raise ValidationError(f"{owner}.{key}", value, "must be a number")
    return list(values)


def _optional_number(raw: Mapping[str, Any], key: str, owner: str) -> Optional[float]:
    value = raw.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise ValidationError(f"{owner}.{key}", value, "must be a number")
    return value


def _require_mapping(value: Any, owner: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(owner, value, "must be a mapping")
    return value


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackData(SerializableRecord):
    """Raw cumulative counters of one media track, sampled at a common cadence."""
    ssrc: Optional[Any] = None
    media_type: Optional[str] = None
    video_type: Optional[str] = None
    packets_sent: List[float] = field(default_factory=list)
    packets_sent_lost: List[float] = field(default_factory=list)
    packets_received: List[float] = field(default_factory=list)
    packets_received_lost: List[float] = field(default_factory=list)
    total_samples_received: List[float] = field(default_factory=list)
    concealed_samples_received: List[float] = field(default_factory=list)
    timestamps: List[float] = field(default_factory=list)
    sent_timestamps: List[float] = field(default_factory=list)
    received_timestamps: List[float] = field(default_factory=list)
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], owner: str = "track") -> "TrackData":
        raw = _require_mapping(raw, owner)
        return cls(
            ssrc=raw.get('ssrc'),
            media_type=raw.get('mediaType') or None,
            video_type=raw.get('videoType') or None,
            packets_sent=_number_series(raw, 'packetsSent', owner),
            packets_sent_lost=_number_series(raw, 'packetsSentLost', owner),
            packets_received=_number_series(raw, 'packetsReceived', owner),
            packets_received_lost=_number_series(raw, 'packetsReceivedLost', owner),
            total_samples_received=_number_series(raw, 'totalSamplesReceived', owner),
            concealed_samples_received=_number_series(raw, 'concealedSamplesReceived', owner),
            timestamps=_number_series(raw, 'timestamps', owner),
            sent_timestamps=_number_series(raw, 'sentTimestamps', owner),
            received_timestamps=_number_series(raw, 'receivedTimestamps', owner),
            start_time=_optional_number(raw, 'startTime', owner),
            end_time=_optional_number(raw, 'endTime', owner),
        )

    @property
    def media_label(self) -> str:
        """Media type, suffixed with the video type when one was reported."""
        if self.video_type:
            return f"{self.media_type}/{self.video_type}"
        return self.media_type or ''

    @property
    def sent_sample_times(self) -> List[float]:
        """Collection times of the sent series, falling back to the shared timestamps."""
        return self.sent_timestamps or self.timestamps

    @property
    def received_sample_times(self) -> List[float]:
        return self.received_timestamps or self.timestamps


@dataclass(frozen=True)
class ConnectionState(SerializableRecord):
    """One entry of a peer connection's state timeline."""
    state: str
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class CandidatePairData(SerializableRecord):
    """Descriptor of the selected ICE candidate pair. Addresses are opaque strings."""
    local_address: Optional[str] = None
    local_candidate_type: Optional[str] = None
    local_protocol: Optional[str] = None
    remote_address: Optional[str] = None
    remote_candidate_type: Optional[str] = None
    remote_protocol: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CandidatePairData":
        raw = _require_mapping(raw, "candidatePairData")
        return cls(
            local_address=raw.get('localAddress'),
            local_candidate_type=raw.get('localCandidateType'),
            local_protocol=raw.get('localProtocol'),
            remote_address=raw.get('remoteAddress'),
            remote_candidate_type=raw.get('remoteCandidateType'),
            remote_protocol=raw.get('remoteProtocol'),
        )

    @property
    def uses_relay(self) -> bool:
        return 'relay' in (self.local_candidate_type, self.remote_candidate_type)


@dataclass(frozen=True)
class TransportData(SerializableRecord):
    """Transport level samples of a peer connection."""
    rtts: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class VideoSummary(SerializableRecord):
    """Resolution and frame rate reported for one bound of a video experience."""
    frame_height: Optional[float] = None
    frames_per_second: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]], owner: str) -> Optional["VideoSummary"]:
        if raw is None:
            return None
        raw = _require_mapping(raw, owner)
        return cls(
            frame_height=_optional_number(raw, 'frameHeight', owner),
            frames_per_second=_optional_number(raw, 'framesPerSecond', owner),
        )


@dataclass(frozen=True)
class VideoExperience(SerializableRecord):
    """Upper and lower bound of the inbound video experience at one point in time."""
    upper_bound: Optional[VideoSummary] = None
    lower_bound: Optional[VideoSummary] = None


@dataclass(frozen=True)
class PeerConnectionData(SerializableRecord):
    """Everything the collector gathered for a single peer connection."""
    is_p2p: Optional[bool] = field(default=None, metadata={'key': 'isP2P'})
    uses_relay: Optional[bool] = None
    is_callstats: bool = False
    dtls_errors: Optional[int] = None
    dtls_failure: Optional[bool] = None
    sdp_create_failure: Optional[bool] = None
    sdp_set_failure: Optional[bool] = None
    last_ice_failure: Optional[float] = None
    last_ice_disconnect: Optional[float] = None
    connection_states: List[ConnectionState] = field(default_factory=list)
    candidate_pair_data: Optional[CandidatePairData] = None
    transport: TransportData = field(default_factory=TransportData)
    inbound_video_experiences: List[VideoExperience] = field(default_factory=list)
    tracks: Dict[str, TrackData] = field(default_factory=dict)
    vacuumed_tracks: List[TrackData] = field(default_factory=list)
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    _KNOWN_KEYS = frozenset({
        'isP2P', 'usesRelay', 'isCallstats', 'dtlsErrors', 'dtlsFailure',
        'sdpCreateFailure', 'sdpSetFailure', 'lastIceFailure', 'lastIceDisconnect',
        'connectionStates', 'candidatePairData', 'transport', 'inboundVideoExperiences',
        'tracks', 'vacuumedTracks', 'startTime', 'endTime',
    })

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], pc_id: str = "pc") -> "PeerConnectionData":
        """
        Parse the collector output of one peer connection.

        Tracks are read from an explicit ``tracks`` mapping; entries sitting
        directly in the connection map that carry a ``mediaType`` are tracks
        too (the collector stores them keyed by stream id next to the flags).
        """
        raw = _require_mapping(raw, pc_id)

        tracks: Dict[str, TrackData] = {}
        for track_id, track_raw in _require_mapping(raw.get('tracks') or {}, f"{pc_id}.tracks").items():
            tracks[str(track_id)] = TrackData.from_dict(track_raw, f"{pc_id}.tracks.{track_id}")
        for key, value in raw.items():
            if key not in cls._KNOWN_KEYS and isinstance(value, Mapping) and value.get('mediaType'):
                tracks[str(key)] = TrackData.from_dict(value, f"{pc_id}.{key}")

        vacuumed_raw = raw.get('vacuumedTracks') or []
        if not isinstance(vacuumed_raw, (list, tuple)):
            raise ValidationError(f"{pc_id}.vacuumedTracks", vacuumed_raw, "must be a list")
        vacuumed = [
            TrackData.from_dict(track_raw, f"{pc_id}.vacuumedTracks[{index}]")
            for index, track_raw in enumerate(vacuumed_raw)
        ]

        states = []
        for index, entry in enumerate(raw.get('connectionStates') or []):
            entry = _require_mapping(entry, f"{pc_id}.connectionStates[{index}]")
            states.append(ConnectionState(
                state=entry.get('state'),
                timestamp=_optional_number(entry, 'timestamp', f"{pc_id}.connectionStates[{index}]"),
            ))

        transport_raw = _require_mapping(raw.get('transport') or {}, f"{pc_id}.transport")

        experiences = []
        for index, entry in enumerate(raw.get('inboundVideoExperiences') or []):
            owner = f"{pc_id}.inboundVideoExperiences[{index}]"
            entry = _require_mapping(entry, owner)
            experiences.append(VideoExperience(
                upper_bound=VideoSummary.from_dict(entry.get('upperBound'), f"{owner}.upperBound"),
                lower_bound=VideoSummary.from_dict(entry.get('lowerBound'), f"{owner}.lowerBound"),
            ))

        candidate_pair = raw.get('candidatePairData')

        return cls(
            is_p2p=raw.get('isP2P'),
            uses_relay=raw.get('usesRelay'),
            is_callstats=bool(raw.get('isCallstats', False)),
            dtls_errors=raw.get('dtlsErrors'),
            dtls_failure=raw.get('dtlsFailure'),
            sdp_create_failure=raw.get('sdpCreateFailure'),
            sdp_set_failure=raw.get('sdpSetFailure'),
            last_ice_failure=raw.get('lastIceFailure'),
            last_ice_disconnect=raw.get('lastIceDisconnect'),
            connection_states=states,
            candidate_pair_data=CandidatePairData.from_dict(candidate_pair) if candidate_pair else None,
            transport=TransportData(rtts=_number_series(transport_raw, 'rtts', f"{pc_id}.transport")),
            inbound_video_experiences=experiences,
            tracks=tracks,
            vacuumed_tracks=vacuumed,
            start_time=_optional_number(raw, 'startTime', pc_id),
            end_time=_optional_number(raw, 'endTime', pc_id),
        )


@dataclass(frozen=True)
class TrackSeries:
    """
    One direction (sent or received) of a track, as seen by the summary calculator.

    ``packets_lost`` is the cumulative loss counter; ``packets_lost_deltas`` is
    the per-interval loss sequence derived from it, aligned index for index
    with ``packets``.
    """
    packets: List[float] = field(default_factory=list)
    packets_lost: List[float] = field(default_factory=list)
    timestamps: List[float] = field(default_factory=list)
    samples_received: List[float] = field(default_factory=list)
    concealed_samples: List[float] = field(default_factory=list)
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def packets_lost_deltas(self) -> List[float]:
        if not self.packets_lost:
            return []
        deltas = [self.packets_lost[0]]
        deltas.extend(
            current - previous
            for previous, current in zip(self.packets_lost, self.packets_lost[1:])
        )
        return deltas


# ---------------------------------------------------------------------------
# Output models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackFeatureRecord(SerializableRecord):
    """Summary of one track in one direction."""
    media_type: str
    ssrc: Optional[Any] = None
    packets: float = 0
    packets_lost: float = 0
    packets_lost_pct: float = 0
    packets_lost_variance: float = 0
    concealed_percentage: float = 0
    freeze_percentage: Optional[float] = None
    freeze_duration: Optional[float] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None


@dataclass(frozen=True)
class TrackStats(SerializableRecord):
    """Per-track summaries of a peer connection, split by direction."""
    sender_tracks: List[TrackFeatureRecord] = field(default_factory=list)
    receiver_tracks: List[TrackFeatureRecord] = field(default_factory=list)


@dataclass(frozen=True)
class TrackAggregateRecord(SerializableRecord):
    """Connection level packet totals and loss percentages per direction."""
    total_packets_sent: float = 0
    total_sent_packets_lost: float = 0
    sent_packets_lost_pct: float = 0
    total_packets_received: float = 0
    total_received_packets_lost: float = 0
    received_packets_lost_pct: float = 0


@dataclass(frozen=True)
class TransportAggregateRecord(SerializableRecord):
    mean_rtt: Optional[float] = None


@dataclass(frozen=True)
class VideoSummaryAggregate(SerializableRecord):
    mean_frame_height: Optional[float] = None
    mean_frames_per_second: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.mean_frame_height is None and self.mean_frames_per_second is None


@dataclass(frozen=True)
class VideoExperienceAggregate(SerializableRecord):
    upper_bound_aggregates: Optional[VideoSummaryAggregate] = None
    lower_bound_aggregates: Optional[VideoSummaryAggregate] = None


@dataclass(frozen=True)
class PeerConnectionAggregate(SerializableRecord):
    """All derived metrics of one peer connection plus its copied-through flags."""
    is_p2p: Optional[bool] = field(default=None, metadata={'key': 'isP2P'})
    uses_relay: Optional[bool] = None
    dtls_errors: Optional[int] = None
    dtls_failure: Optional[bool] = None
    sdp_create_failure: Optional[bool] = None
    sdp_set_failure: Optional[bool] = None
    last_ice_failure: Optional[float] = None
    last_ice_disconnect: Optional[float] = None
    candidate_pair_data: Optional[CandidatePairData] = None
    tracks: TrackStats = field(default_factory=TrackStats)
    track_aggregates: TrackAggregateRecord = field(default_factory=TrackAggregateRecord)
    transport_aggregates: TransportAggregateRecord = field(default_factory=TransportAggregateRecord)
    ice_reconnects: int = 0
    pc_session_duration_ms: float = 0
    connection_failed: bool = False
    inbound_video_experience: Optional[VideoExperienceAggregate] = None

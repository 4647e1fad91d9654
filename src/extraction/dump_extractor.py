"""
Raw stats dump extraction

Builds the session sample map consumed by the quality statistics engine from
an rtcstats dump: a sequence of ``[method, pc_id, payload, timestamp]``
entries recorded for the whole session. ``getstats`` entries carry full
(uncompressed) ``RTCStatsReport`` maps keyed by stats id.

All intermediate state lives in builders created for a single ``extract``
call, so concurrent extractions over different dumps never share counters.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from quality_stats.models import (
    CandidatePairData,
    ConnectionState,
    PeerConnectionData,
    TrackData,
    TransportData,
)
from monitoring.structured_logging import CorrelationIdManager
from sdk.exceptions import InputFormatError, ValidationError

logger = logging.getLogger(__name__)

SDP_CREATE_FAILURES = frozenset({'createOfferOnFailure', 'createAnswerOnFailure'})
SDP_SET_FAILURES = frozenset({'setLocalDescriptionOnFailure', 'setRemoteDescriptionOnFailure'})
STATS_METHODS = frozenset({'getstats', 'getStats'})


@dataclass
class _TrackBuilder:
    ssrc: Any
    media_type: Optional[str] = None
    packets_sent: List[float] = field(default_factory=list)
    packets_sent_lost: List[float] = field(default_factory=list)
    packets_received: List[float] = field(default_factory=list)
    packets_received_lost: List[float] = field(default_factory=list)
    total_samples_received: List[float] = field(default_factory=list)
    concealed_samples_received: List[float] = field(default_factory=list)
    sent_timestamps: List[float] = field(default_factory=list)
    received_timestamps: List[float] = field(default_factory=list)

    def build(self) -> TrackData:
        sample_times = sorted(self.sent_timestamps + self.received_timestamps)
        return TrackData(
            ssrc=self.ssrc,
            media_type=self.media_type,
            packets_sent=self.packets_sent,
            packets_sent_lost=self.packets_sent_lost,
            packets_received=self.packets_received,
            packets_received_lost=self.packets_received_lost,
            total_samples_received=self.total_samples_received,
            concealed_samples_received=self.concealed_samples_received,
            sent_timestamps=self.sent_timestamps,
            received_timestamps=self.received_timestamps,
            start_time=sample_times[0] if sample_times else None,
            end_time=sample_times[-1] if sample_times else None,
        )


class _PeerConnectionBuilder:
    """Accumulates the samples of one peer connection during one extraction."""

    def __init__(self, pc_id: str):
        self.pc_id = pc_id
        self.tracks: Dict[str, _TrackBuilder] = {}
        self.connection_states: List[ConnectionState] = []
        self.rtts: List[float] = []
        self.candidate_pair: Optional[CandidatePairData] = None
        self.is_p2p: Optional[bool] = None
        self.dtls_errors = 0
        self.dtls_failure = False
        self.sdp_create_failure = False
        self.sdp_set_failure = False
        self.last_ice_failure: Optional[float] = None
        self.last_ice_disconnect: Optional[float] = None
        self.start_time: Optional[float] = None
        self.close_time: Optional[float] = None
        self.last_timestamp: Optional[float] = None

    def handle(self, method: str, payload: Any, timestamp: Optional[float]):
        if timestamp is not None:
            self.last_timestamp = timestamp

        if method in STATS_METHODS:
            if isinstance(payload, Mapping):
                self._handle_stats(payload, timestamp)
        elif method == 'create':
            if isinstance(payload, Mapping) and 'rtcStatsSFUP2P' in payload:
                self.is_p2p = bool(payload['rtcStatsSFUP2P'])
        elif method == 'oniceconnectionstatechange':
            self._handle_ice_state(payload, timestamp)
        elif method == 'ondtlsstatechange':
            if payload == 'failed':
                self.dtls_failure = True
        elif method == 'ondtlserror':
            self.dtls_errors += 1
        elif method in SDP_CREATE_FAILURES:
            self.sdp_create_failure = True
        elif method in SDP_SET_FAILURES:
            self.sdp_set_failure = True
        elif method == 'close':
            self.close_time = timestamp

    def _handle_ice_state(self, state: Any, timestamp: Optional[float]):
        if not isinstance(state, str):
            return
        self.connection_states.append(ConnectionState(state=state, timestamp=timestamp))
        if state == 'connected' and self.start_time is None:
            self.start_time = timestamp
        elif state == 'failed':
            self.last_ice_failure = timestamp
        elif state == 'disconnected':
            self.last_ice_disconnect = timestamp

    def _track(self, report: Mapping[str, Any]) -> _TrackBuilder:
        ssrc = report.get('ssrc')
        track = self.tracks.setdefault(str(ssrc), _TrackBuilder(ssrc=ssrc))
        media_type = report.get('kind') or report.get('mediaType')
        if media_type:
            track.media_type = media_type
        return track

    def _handle_stats(self, reports: Mapping[str, Any], timestamp: Optional[float]):
        remote_inbound = {
            report.get('ssrc'): report
            for report in reports.values()
            if isinstance(report, Mapping) and report.get('type') == 'remote-inbound-rtp'
        }

        for report in reports.values():
            if not isinstance(report, Mapping) or report.get('ssrc') is None:
                continue

            if report.get('type') == 'inbound-rtp' and 'packetsReceived' in report:
                track = self._track(report)
                track.packets_received.append(report['packetsReceived'])
                track.packets_received_lost.append(report.get('packetsLost', 0))
                if 'totalSamplesReceived' in report and 'concealedSamples' in report:
                    track.total_samples_received.append(report['totalSamplesReceived'])
                    track.concealed_samples_received.append(report['concealedSamples'])
                if timestamp is not None:
                    track.received_timestamps.append(timestamp)

            elif report.get('type') == 'outbound-rtp' and 'packetsSent' in report:
                track = self._track(report)
                remote = remote_inbound.get(report['ssrc'])
                if remote is not None and 'packetsLost' in remote:
                    lost = remote['packetsLost']
                else:
                    # Remote reports arrive less often than local ones.
                    lost = track.packets_sent_lost[-1] if track.packets_sent_lost else 0
                track.packets_sent.append(report['packetsSent'])
                track.packets_sent_lost.append(lost)
                if timestamp is not None:
                    track.sent_timestamps.append(timestamp)

        self._handle_candidate_pair(reports)

    def _handle_candidate_pair(self, reports: Mapping[str, Any]):
        pair = None
        for report in reports.values():
            if isinstance(report, Mapping) and report.get('type') == 'transport':
                pair = reports.get(report.get('selectedCandidatePairId'))
                break
        if pair is None:
            pair = next((
                report for report in reports.values()
                if isinstance(report, Mapping)
                and report.get('type') == 'candidate-pair'
                and report.get('state') == 'succeeded'
                and report.get('nominated')
            ), None)
        if not isinstance(pair, Mapping):
            return

        rtt = pair.get('currentRoundTripTime')
        if rtt is not None:
            self.rtts.append(rtt * 1000)

        local = reports.get(pair.get('localCandidateId')) or {}
        remote = reports.get(pair.get('remoteCandidateId')) or {}
        self.candidate_pair = CandidatePairData(
            local_address=local.get('address') or local.get('ip'),
            local_candidate_type=local.get('candidateType'),
            local_protocol=local.get('protocol'),
            remote_address=remote.get('address') or remote.get('ip'),
            remote_candidate_type=remote.get('candidateType'),
            remote_protocol=remote.get('protocol'),
        )

    def build(self) -> PeerConnectionData:
        return PeerConnectionData(
            is_p2p=self.is_p2p,
            uses_relay=self.candidate_pair.uses_relay if self.candidate_pair else None,
            dtls_errors=self.dtls_errors,
            dtls_failure=self.dtls_failure,
            sdp_create_failure=self.sdp_create_failure,
            sdp_set_failure=self.sdp_set_failure,
            last_ice_failure=self.last_ice_failure,
            last_ice_disconnect=self.last_ice_disconnect,
            connection_states=self.connection_states,
            candidate_pair_data=self.candidate_pair,
            transport=TransportData(rtts=self.rtts),
            tracks={key: track.build() for key, track in self.tracks.items()},
            start_time=self.start_time,
            end_time=self.close_time if self.close_time is not None else self.last_timestamp,
        )


class DumpExtractor:
    """Turns rtcstats dump entries into per peer connection sample data."""

    def extract(self, entries: Iterable[Sequence[Any]]) -> Dict[str, PeerConnectionData]:
        builders: Dict[str, _PeerConnectionBuilder] = {}

        for index, entry in enumerate(entries):
            if not isinstance(entry, (list, tuple)) or len(entry) < 2:
                raise ValidationError(f"entries[{index}]", entry, "must be [method, pc_id, payload, timestamp]")

            method, pc_id = entry[0], entry[1]
            payload = entry[2] if len(entry) > 2 else None
            timestamp = entry[3] if len(entry) > 3 else None

            # Entries without a peer connection describe the session itself.
            if pc_id is None:
                if isinstance(payload, Mapping) and payload.get('clientId'):
                    CorrelationIdManager.set_session_id(payload['clientId'])
                continue

            builder = builders.get(pc_id)
            if builder is None:
                builder = builders[pc_id] = _PeerConnectionBuilder(pc_id)
            builder.handle(method, payload, timestamp)

        logger.info(f"Extracted samples for {len(builders)} peer connections")
        return {pc_id: builder.build() for pc_id, builder in builders.items()}


def load_dump(path: Union[str, Path]) -> List[List[Any]]:
    """Read a newline delimited JSON rtcstats dump."""
    path = Path(path)
    entries = []
    try:
        with open(path, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError as e:
                    raise InputFormatError(str(path), e.msg, line_number=line_number)
    except OSError as e:
        raise InputFormatError(str(path), str(e))

    logger.debug(f"Loaded {len(entries)} dump entries from {path}")
    return entries

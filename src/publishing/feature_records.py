"""
Feature record shaping

Flattens peer connection aggregates into the flat rows of the analytics
store: one peer connection features record per connection and one track
features record per track and direction. Writing the rows is the job of
whichever database connector consumes them; nothing here does I/O.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from quality_stats.models import PeerConnectionAggregate, TrackFeatureRecord
from sdk.utils import get_sql_timestamp

logger = logging.getLogger(__name__)

RECEIVED = 'received'
SEND = 'send'


@dataclass
class FeatureRecords:
    """Rows produced for one session."""
    pc_records: List[Dict[str, Any]] = field(default_factory=list)
    track_records: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'pcRecords': self.pc_records, 'trackRecords': self.track_records}


def _finite(value: Any) -> Any:
    """Non-finite numbers cannot be stored; they become NULL."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _common_session_fields(dump_info: Mapping[str, Any]) -> Dict[str, Any]:
    conference_start_time = dump_info.get('conferenceStartTime')
    return {
        'conferenceStartTime': get_sql_timestamp(conference_start_time) if conference_start_time else None,
        'statsSessionId': dump_info.get('clientId'),
        'appId': dump_info.get('appId'),
        'ownerId': dump_info.get('ownerId'),
        'meetingUniqueId': dump_info.get('sessionId'),
        'meetingUrl': dump_info.get('conferenceUrl'),
        'tenant': dump_info.get('tenant'),
        'jaasClientId': dump_info.get('jaasClientId'),
    }


class FeatureRecordBuilder:
    """Builds flat feature records from the aggregates of a session."""

    def __init__(self, app_env: str):
        if not app_env:
            raise ValueError("app_env is required")
        self.app_env = app_env

    def build(
        self,
        dump_info: Mapping[str, Any],
        aggregates: Mapping[str, PeerConnectionAggregate],
        create_date: Optional[str] = None
    ) -> FeatureRecords:
        """
        Flatten all peer connection aggregates of a session.

        Args:
            dump_info: Session metadata (clientId, sessionId, conferenceUrl, ...).
            aggregates: Output of ``StatsAggregator.calculate_aggregates``.
            create_date: SQL timestamp stamped on every row, defaults to now.
        """
        create_date = create_date or get_sql_timestamp()
        common = _common_session_fields(dump_info)
        records = FeatureRecords()

        for pc_name, aggregate in aggregates.items():
            pc_record = self._pc_record(pc_name, aggregate, common, create_date)
            records.pc_records.append(pc_record)

            for track in aggregate.tracks.receiver_tracks:
                records.track_records.append(
                    self._track_record(track, RECEIVED, aggregate, pc_record['id'], common, create_date)
                )
            for track in aggregate.tracks.sender_tracks:
                records.track_records.append(
                    self._track_record(track, SEND, aggregate, pc_record['id'], common, create_date)
                )

        logger.info(
            f"Built {len(records.pc_records)} pc records and "
            f"{len(records.track_records)} track records for {common['statsSessionId']}"
        )
        return records

    def _pc_record(
        self,
        pc_name: str,
        aggregate: PeerConnectionAggregate,
        common: Dict[str, Any],
        create_date: str
    ) -> Dict[str, Any]:
        track_aggregates = aggregate.track_aggregates
        video = aggregate.inbound_video_experience
        upper = video.upper_bound_aggregates if video else None
        lower = video.lower_bound_aggregates if video else None
        candidate_pair = aggregate.candidate_pair_data

        record = {
            **common,
            'id': str(uuid.uuid4()),
            'pcname': pc_name,
            'createDate': create_date,
            'appEnv': self.app_env,
            'dtlsErrors': aggregate.dtls_errors,
            'dtlsFailure': aggregate.dtls_failure,
            'sdpCreateFailure': aggregate.sdp_create_failure,
            'sdpSetFailure': aggregate.sdp_set_failure,
            'isP2P': aggregate.is_p2p,
            'usesRelay': aggregate.uses_relay,
            'iceReconnects': aggregate.ice_reconnects,
            'pcSessionDurationMs': aggregate.pc_session_duration_ms,
            'connectionFailed': aggregate.connection_failed,
            'lastIceFailure': aggregate.last_ice_failure,
            'lastIceDisconnect': aggregate.last_ice_disconnect,
            'receivedPacketsLostPct': track_aggregates.received_packets_lost_pct,
            'sentPacketsLostPct': track_aggregates.sent_packets_lost_pct,
            'totalPacketsReceived': track_aggregates.total_packets_received,
            'totalPacketsSent': track_aggregates.total_packets_sent,
            'totalReceivedPacketsLost': track_aggregates.total_received_packets_lost,
            'totalSentPacketsLost': track_aggregates.total_sent_packets_lost,
            'meanRtt': aggregate.transport_aggregates.mean_rtt,
            'meanUpperBoundFrameHeight': upper.mean_frame_height if upper else None,
            'meanUpperBoundFramesPerSecond': upper.mean_frames_per_second if upper else None,
            'meanLowerBoundFrameHeight': lower.mean_frame_height if lower else None,
            'meanLowerBoundFramesPerSecond': lower.mean_frames_per_second if lower else None,
        }

        for key in ('localAddress', 'localCandidateType', 'localProtocol',
                    'remoteAddress', 'remoteCandidateType', 'remoteProtocol'):
            record[key] = None
        if candidate_pair:
            record.update(candidate_pair.to_dict())

        return {key: _finite(value) for key, value in record.items()}

    @staticmethod
    def _track_record(
        track: TrackFeatureRecord,
        direction: str,
        aggregate: PeerConnectionAggregate,
        pc_id: str,
        common: Dict[str, Any],
        create_date: str
    ) -> Dict[str, Any]:
        record = {
            **common,
            'id': str(uuid.uuid4()),
            'pcId': pc_id,
            'createDate': create_date,
            'isP2P': aggregate.is_p2p,
            'direction': direction,
            'mediaType': track.media_type,
            'ssrc': track.ssrc,
            'packets': track.packets,
            'packetsLost': track.packets_lost,
            'packetsLostPct': track.packets_lost_pct,
            'packetsLostVariance': track.packets_lost_variance,
            'concealedPercentage': track.concealed_percentage,
            'freezeDuration': track.freeze_duration,
            'freezePercentage': track.freeze_percentage,
        }

        if track.start_time:
            record['startTime'] = get_sql_timestamp(track.start_time)
        if track.end_time:
            record['endTime'] = get_sql_timestamp(track.end_time)

        return {key: _finite(value) for key, value in record.items()}

"""
Quality Statistics Aggregation

Runs once per recorded session, after the collector has gathered the complete
sample arrays of every peer connection, and reduces them to per-connection
aggregates ready to be handed to the feature publisher.

The pass is pure: the input map is never mutated, every accumulator is local
to the call, and nothing is written or sent anywhere.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from sdk.config_manager import AggregationConfig

from .aggregators import (
    calculate_track_aggregates,
    calculate_transport_aggregates,
    calculate_video_experience_aggregates,
)
from .lifecycle import calculate_reconnects, calculate_session_duration_ms, did_connection_fail
from .models import PeerConnectionAggregate, PeerConnectionData
from .track_stats import classify_tracks

logger = logging.getLogger(__name__)


class StatsAggregator:
    """Computes the quality aggregates of every peer connection in a session."""

    def __init__(self, config: Optional[AggregationConfig] = None):
        self.config = config or AggregationConfig()

    def calculate_pc_aggregate(self, pc_data: PeerConnectionData) -> PeerConnectionAggregate:
        """Aggregate a single peer connection."""
        return PeerConnectionAggregate(
            is_p2p=pc_data.is_p2p,
            uses_relay=pc_data.uses_relay,
            dtls_errors=pc_data.dtls_errors,
            dtls_failure=pc_data.dtls_failure,
            sdp_create_failure=pc_data.sdp_create_failure,
            sdp_set_failure=pc_data.sdp_set_failure,
            last_ice_failure=pc_data.last_ice_failure,
            last_ice_disconnect=pc_data.last_ice_disconnect,
            candidate_pair_data=pc_data.candidate_pair_data,
            tracks=classify_tracks(pc_data, self.config.freeze_threshold),
            track_aggregates=calculate_track_aggregates(pc_data),
            transport_aggregates=calculate_transport_aggregates(pc_data, self.config.rtt_decimals),
            ice_reconnects=calculate_reconnects(pc_data),
            pc_session_duration_ms=calculate_session_duration_ms(pc_data),
            connection_failed=did_connection_fail(pc_data),
            inbound_video_experience=calculate_video_experience_aggregates(
                pc_data.inbound_video_experiences, self.config.video_decimals
            ),
        )

    def calculate_aggregates(
        self,
        session_samples: Mapping[str, Union[PeerConnectionData, Mapping[str, Any]]]
    ) -> Dict[str, PeerConnectionAggregate]:
        """
        Aggregate every peer connection of a session.

        Args:
            session_samples: Peer connection id to its collected data, either
                parsed ``PeerConnectionData`` or the collector's raw mapping.

        Returns:
            Peer connection id to its aggregate. Connections monitored by
            callstats are skipped and get no entry.
        """
        result: Dict[str, PeerConnectionAggregate] = {}

        for pc_id, raw in session_samples.items():
            pc_data = raw if isinstance(raw, PeerConnectionData) else PeerConnectionData.from_dict(raw, pc_id)

            if pc_data.is_callstats:
                logger.debug(f"Skipping callstats peer connection {pc_id}")
                continue

            result[pc_id] = self.calculate_pc_aggregate(pc_data)
            logger.debug(
                f"Aggregated peer connection {pc_id}",
                extra={'extra_data': {
                    'pc_id': pc_id,
                    'tracks': len(result[pc_id].tracks.sender_tracks) + len(result[pc_id].tracks.receiver_tracks),
                    'ice_reconnects': result[pc_id].ice_reconnects,
                }}
            )

        logger.info(
            f"Computed aggregates for {len(result)} of {len(session_samples)} peer connections"
        )
        return result

    aggregate = calculate_aggregates

"""
Connection level aggregates: packet totals, transport RTT and video experience.
"""

from typing import List, Optional, Sequence

from .models import (
    PeerConnectionData,
    TrackAggregateRecord,
    TransportAggregateRecord,
    VideoExperience,
    VideoExperienceAggregate,
    VideoSummary,
    VideoSummaryAggregate,
)
from .series_math import mean, percent_of, round_to
from .track_stats import get_tracks


def _loss_percentage(lost: float, total: float) -> float:
    if total and 0 < lost < total:
        return percent_of(lost, total)
    return 0


def calculate_track_aggregates(pc_data: PeerConnectionData) -> TrackAggregateRecord:
    """
    Sum the per-track totals of a peer connection.

    Counters are cumulative, so the last value of each series is the track's
    total for the session.
    """
    total_packets_sent = 0
    total_sent_packets_lost = 0
    total_packets_received = 0
    total_received_packets_lost = 0

    for track in get_tracks(pc_data):
        if track.packets_sent:
            total_packets_sent += track.packets_sent[-1]
            if track.packets_sent_lost:
                total_sent_packets_lost += track.packets_sent_lost[-1]

        if track.packets_received:
            total_packets_received += track.packets_received[-1]
            if track.packets_received_lost:
                total_received_packets_lost += track.packets_received_lost[-1]

    return TrackAggregateRecord(
        total_packets_sent=total_packets_sent,
        total_sent_packets_lost=total_sent_packets_lost,
        sent_packets_lost_pct=_loss_percentage(total_sent_packets_lost, total_packets_sent),
        total_packets_received=total_packets_received,
        total_received_packets_lost=total_received_packets_lost,
        received_packets_lost_pct=_loss_percentage(total_received_packets_lost, total_packets_received),
    )


def calculate_transport_aggregates(pc_data: PeerConnectionData, decimals: int = 2) -> TransportAggregateRecord:
    """Mean RTT of the connection; left out when no RTT was sampled."""
    return TransportAggregateRecord(
        mean_rtt=round_to(mean(pc_data.transport.rtts), decimals)
    )


def calculate_video_summary_aggregates(
    summaries: Sequence[Optional[VideoSummary]],
    decimals: int = 2
) -> Optional[VideoSummaryAggregate]:
    """Mean frame height and frame rate over one bound of the video experiences."""
    if not summaries:
        return None

    heights: List[Optional[float]] = [s.frame_height if s else None for s in summaries]
    frame_rates: List[Optional[float]] = [s.frames_per_second if s else None for s in summaries]

    return VideoSummaryAggregate(
        mean_frame_height=round_to(mean(heights), decimals),
        mean_frames_per_second=round_to(mean(frame_rates), decimals),
    )


def calculate_video_experience_aggregates(
    experiences: Sequence[VideoExperience],
    decimals: int = 2
) -> Optional[VideoExperienceAggregate]:
    """Upper and lower bound aggregates, or None when neither bound has a value."""
    upper = calculate_video_summary_aggregates([e.upper_bound for e in experiences], decimals)
    lower = calculate_video_summary_aggregates([e.lower_bound for e in experiences], decimals)

    if upper is not None and upper.is_empty:
        upper = None
    if lower is not None and lower.is_empty:
        lower = None

    if upper is None and lower is None:
        return None

    return VideoExperienceAggregate(upper_bound_aggregates=upper, lower_bound_aggregates=lower)

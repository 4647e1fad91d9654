"""
Quality statistics engine.
Turns raw per-sample WebRTC counters into per-track and per-connection
quality aggregates: freezes, packet loss, loss burstiness, video experience,
reconnects and session duration.
"""

from .freeze_detector import FreezeResult, calculate_freeze
from .models import (
    CandidatePairData,
    ConnectionState,
    PeerConnectionAggregate,
    PeerConnectionData,
    TrackAggregateRecord,
    TrackData,
    TrackFeatureRecord,
    TrackSeries,
    TrackStats,
    TransportAggregateRecord,
    TransportData,
    VideoExperience,
    VideoExperienceAggregate,
    VideoSummary,
    VideoSummaryAggregate,
)
from .stats_aggregator import StatsAggregator
from .track_stats import classify_tracks, compute_track_summary, get_tracks

__all__ = [
    "StatsAggregator",
    "FreezeResult",
    "calculate_freeze",
    "classify_tracks",
    "compute_track_summary",
    "get_tracks",

    # Input
    "PeerConnectionData",
    "TrackData",
    "TrackSeries",
    "ConnectionState",
    "CandidatePairData",
    "TransportData",
    "VideoExperience",
    "VideoSummary",

    # Output
    "PeerConnectionAggregate",
    "TrackStats",
    "TrackFeatureRecord",
    "TrackAggregateRecord",
    "TransportAggregateRecord",
    "VideoExperienceAggregate",
    "VideoSummaryAggregate",
]

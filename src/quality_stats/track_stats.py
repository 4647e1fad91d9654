"""
Per-track statistics: one summary record per track and direction.
"""

import logging
from typing import List

from .freeze_detector import DEFAULT_FREEZE_THRESHOLD, calculate_freeze
from .models import PeerConnectionData, TrackData, TrackFeatureRecord, TrackSeries, TrackStats
from .series_math import percent_of, series_differences, standardized_moment

logger = logging.getLogger(__name__)


def compute_track_summary(
    series: TrackSeries,
    media_label: str,
    ssrc,
    freeze_threshold: float = DEFAULT_FREEZE_THRESHOLD
) -> TrackFeatureRecord:
    """
    Reduce one direction of a track to its summary record.

    Totals are the last values of the cumulative series. The loss percentage
    is only meaningful while ``0 < packets_lost < packets``; outside of that
    (no loss, or a counter that reset or overshot) it stays at zero.
    """
    if not series.packets:
        return TrackFeatureRecord(
            media_type=media_label,
            ssrc=ssrc,
            freeze_percentage=0,
            freeze_duration=0,
        )

    packets = series.packets[-1]
    packets_lost = series.packets_lost[-1] if series.packets_lost else 0

    packets_lost_pct = 0
    if packets and 0 < packets_lost < packets:
        packets_lost_pct = percent_of(packets_lost, packets)

    concealed_percentage = 0
    if series.samples_received and series.concealed_samples:
        concealed_percentage = percent_of(series.concealed_samples[-1], series.samples_received[-1])

    freeze = calculate_freeze(
        series.packets,
        series.packets_lost_deltas,
        freeze_threshold,
        timestamps=series.timestamps,
        start_time=series.start_time,
        end_time=series.end_time,
    )
    if freeze is None:
        logger.warning(f"Skipping freeze metrics for {media_label} track {ssrc}")

    return TrackFeatureRecord(
        media_type=media_label,
        ssrc=ssrc,
        packets=packets,
        packets_lost=packets_lost,
        packets_lost_pct=packets_lost_pct,
        packets_lost_variance=standardized_moment(series_differences(series.packets_lost), 2),
        concealed_percentage=concealed_percentage,
        freeze_percentage=freeze.freeze_percentage if freeze else None,
        freeze_duration=freeze.freeze_duration if freeze else None,
        start_time=series.start_time,
        end_time=series.end_time,
    )


def get_tracks(pc_data: PeerConnectionData) -> List[TrackData]:
    """
    All tracks of a peer connection, vacuumed ones included.

    Entries without a media type are not tracks (e.g. a video type message
    for a track that never produced stats) and are left out.
    """
    tracks = [track for track in pc_data.tracks.values() if track.media_type]
    tracks.extend(track for track in pc_data.vacuumed_tracks if track.media_type)
    return tracks


def classify_tracks(
    pc_data: PeerConnectionData,
    freeze_threshold: float = DEFAULT_FREEZE_THRESHOLD
) -> TrackStats:
    """Summarize every track of a connection as a sender and/or a receiver."""
    sender_tracks = []
    receiver_tracks = []

    for track in get_tracks(pc_data):
        if track.packets_sent:
            sent = TrackSeries(
                packets=track.packets_sent,
                packets_lost=track.packets_sent_lost,
                timestamps=track.sent_sample_times,
                start_time=track.start_time,
                end_time=track.end_time,
            )
            sender_tracks.append(
                compute_track_summary(sent, track.media_label, track.ssrc, freeze_threshold)
            )

        if track.packets_received:
            received = TrackSeries(
                packets=track.packets_received,
                packets_lost=track.packets_received_lost,
                timestamps=track.received_sample_times,
                samples_received=track.total_samples_received,
                concealed_samples=track.concealed_samples_received,
                start_time=track.start_time,
                end_time=track.end_time,
            )
            receiver_tracks.append(
                compute_track_summary(received, track.media_label, track.ssrc, freeze_threshold)
            )

    return TrackStats(sender_tracks=sender_tracks, receiver_tracks=receiver_tracks)

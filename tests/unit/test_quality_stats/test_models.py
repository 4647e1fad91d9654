"""
Unit tests for parsing and serialization of the data model.
"""

import pytest

from quality_stats.models import (
    CandidatePairData,
    PeerConnectionAggregate,
    PeerConnectionData,
    TrackData,
    TrackFeatureRecord,
    TrackSeries,
)
from sdk.exceptions import ValidationError


class TestTrackData:
    """Test track parsing."""

    def test_from_dict(self, video_sender_track):
        track = TrackData.from_dict(video_sender_track)

        assert track.ssrc == 2222
        assert track.media_type == 'video'
        assert track.video_type == 'camera'
        assert track.packets_sent == [0, 500, 1000, 1500]
        assert track.packets_received == []
        assert track.start_time == 1000

    def test_media_label(self):
        assert TrackData(media_type='video', video_type='screen').media_label == 'video/screen'
        assert TrackData(media_type='audio').media_label == 'audio'

    def test_direction_timestamps(self):
        track = TrackData.from_dict({
            'mediaType': 'video',
            'timestamps': [0, 1000],
            'receivedTimestamps': [0, 500, 1000],
        })

        assert track.received_sample_times == [0, 500, 1000]
        assert track.sent_sample_times == [0, 1000]
        assert track.to_dict()['receivedTimestamps'] == [0, 500, 1000]

    def test_non_numeric_sample_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            TrackData.from_dict({'mediaType': 'audio', 'packetsReceived': [0, 'x']}, 'PC_0.tracks.a')

        assert exc_info.value.details['field'] == 'PC_0.tracks.a.packetsReceived'

    def test_series_must_be_a_list(self):
        with pytest.raises(ValidationError):
            TrackData.from_dict({'mediaType': 'audio', 'packetsSent': 10})

    def test_booleans_are_not_numbers(self):
        with pytest.raises(ValidationError):
            TrackData.from_dict({'mediaType': 'audio', 'packetsSent': [True]})


class TestPeerConnectionData:
    """Test peer connection parsing."""

    def test_from_dict(self, pc_raw):
        pc_data = PeerConnectionData.from_dict(pc_raw, 'PC_0')

        assert pc_data.is_p2p is False
        assert pc_data.uses_relay is True
        assert pc_data.is_callstats is False
        assert len(pc_data.connection_states) == 4
        assert pc_data.connection_states[1].state == 'connected'
        assert pc_data.connection_states[1].timestamp == 1000
        assert pc_data.transport.rtts == [40, 50, 61]
        assert set(pc_data.tracks) == {'audio-msid', 'video-msid'}
        assert pc_data.inbound_video_experiences[0].upper_bound.frame_height == 720
        assert pc_data.candidate_pair_data.remote_candidate_type == 'host'

    def test_tracks_next_to_flags(self, audio_receiver_track):
        """Track entries stored directly in the connection map are picked up."""
        pc_data = PeerConnectionData.from_dict({'isP2P': True, 'stream-1': audio_receiver_track})

        assert list(pc_data.tracks) == ['stream-1']

    def test_unknown_mappings_without_media_type_ignored(self):
        pc_data = PeerConnectionData.from_dict({'stream-1': {'videoType': 'camera'}})

        assert pc_data.tracks == {}

    def test_vacuumed_tracks(self, audio_receiver_track):
        pc_data = PeerConnectionData.from_dict({'vacuumedTracks': [audio_receiver_track]})

        assert pc_data.vacuumed_tracks[0].ssrc == 1111

    def test_callstats_flag(self):
        assert PeerConnectionData.from_dict({'isCallstats': True}).is_callstats

    def test_missing_bounds(self):
        pc_data = PeerConnectionData.from_dict({'inboundVideoExperiences': [{'upperBound': {'frameHeight': 360}}]})

        experience = pc_data.inbound_video_experiences[0]
        assert experience.lower_bound is None
        assert experience.upper_bound.frames_per_second is None

    def test_not_a_mapping(self):
        with pytest.raises(ValidationError):
            PeerConnectionData.from_dict(['PC_0'], 'PC_0')

    def test_vacuumed_tracks_must_be_a_list(self):
        with pytest.raises(ValidationError):
            PeerConnectionData.from_dict({'vacuumedTracks': {'a': {}}})


class TestCandidatePairData:
    """Test candidate pair descriptor."""

    def test_uses_relay(self):
        assert CandidatePairData(local_candidate_type='relay').uses_relay
        assert not CandidatePairData(local_candidate_type='host', remote_candidate_type='srflx').uses_relay


class TestTrackSeries:
    """Test derived loss deltas."""

    def test_packets_lost_deltas(self):
        series = TrackSeries(packets_lost=[2, 3, 3, 7])

        assert series.packets_lost_deltas == [2, 1, 0, 4]

    def test_no_loss_series(self):
        assert TrackSeries().packets_lost_deltas == []


class TestSerialization:
    """Test camelCase output without absent fields."""

    def test_track_record(self):
        record = TrackFeatureRecord(media_type='audio', ssrc=1, packets=10, start_time=5)

        assert record.to_dict() == {
            'mediaType': 'audio',
            'ssrc': 1,
            'packets': 10,
            'packetsLost': 0,
            'packetsLostPct': 0,
            'packetsLostVariance': 0,
            'concealedPercentage': 0,
            'startTime': 5,
        }

    def test_p2p_key(self):
        document = PeerConnectionAggregate(is_p2p=True).to_dict()

        assert document['isP2P'] is True
        assert 'isP2p' not in document

    def test_nested_records(self):
        document = PeerConnectionAggregate(
            candidate_pair_data=CandidatePairData(local_address='10.0.0.x')
        ).to_dict()

        assert document['candidatePairData'] == {'localAddress': '10.0.0.x'}
        assert document['tracks'] == {'senderTracks': [], 'receiverTracks': []}
        assert 'inboundVideoExperience' not in document

    def test_input_round_trip(self, pc_raw):
        document = PeerConnectionData.from_dict(pc_raw).to_dict()

        assert document['isP2P'] is False
        assert document['tracks']['video-msid']['packetsSentLost'] == [0, 5, 10, 20]
        assert document['connectionStates'][0] == {'state': 'checking', 'timestamp': 900}

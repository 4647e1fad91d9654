"""
Unit tests for rtcstats dump extraction.
"""

import json
import pytest

from extraction.dump_extractor import DumpExtractor, load_dump
from monitoring.structured_logging import CorrelationIdManager, session_id_var
from quality_stats.stats_aggregator import StatsAggregator
from sdk.exceptions import InputFormatError, ValidationError


def _stats(inbound_received, inbound_lost, outbound_sent, remote_lost=None, rtt=0.05):
    reports = {
        'IT01A1': {
            'type': 'inbound-rtp', 'ssrc': 1111, 'kind': 'audio',
            'packetsReceived': inbound_received, 'packetsLost': inbound_lost,
            'totalSamplesReceived': inbound_received * 480, 'concealedSamples': inbound_lost * 480,
        },
        'OT01V2': {
            'type': 'outbound-rtp', 'ssrc': 2222, 'kind': 'video', 'packetsSent': outbound_sent,
        },
        'T01': {'type': 'transport', 'selectedCandidatePairId': 'CP01'},
        'CP01': {
            'type': 'candidate-pair', 'state': 'succeeded', 'nominated': True,
            'localCandidateId': 'L01', 'remoteCandidateId': 'R01', 'currentRoundTripTime': rtt,
        },
        'L01': {'type': 'local-candidate', 'address': '10.0.0.x', 'candidateType': 'relay', 'protocol': 'udp'},
        'R01': {'type': 'remote-candidate', 'ip': '192.168.1.x', 'candidateType': 'host', 'protocol': 'udp'},
    }
    if remote_lost is not None:
        reports['RI01V2'] = {'type': 'remote-inbound-rtp', 'ssrc': 2222, 'packetsLost': remote_lost}
    return reports


@pytest.fixture
def dump_entries():
    return [
        ['create', 'PC_0', {'rtcStatsSFUP2P': False}, 900],
        ['oniceconnectionstatechange', 'PC_0', 'checking', 950],
        ['oniceconnectionstatechange', 'PC_0', 'connected', 1000],
        ['getstats', 'PC_0', _stats(0, 0, 0, remote_lost=0), 1000],
        ['getstats', 'PC_0', _stats(100, 1, 500), 2000],
        ['getstats', 'PC_0', _stats(200, 3, 1000, remote_lost=10, rtt=0.07), 3000],
        ['oniceconnectionstatechange', 'PC_0', 'disconnected', 3500],
        ['oniceconnectionstatechange', 'PC_0', 'connected', 3700],
        ['ondtlserror', 'PC_0', 'handshake', 3800],
        ['close', 'PC_0', None, 61000],
        ['identity', None, {'clientId': 'c1'}, 500],
    ]


class TestDumpExtractor:
    """Test sample extraction from dump entries."""

    def test_one_connection_per_pc_id(self, dump_entries):
        samples = DumpExtractor().extract(dump_entries)

        assert list(samples) == ['PC_0']

    def test_inbound_track(self, dump_entries):
        track = DumpExtractor().extract(dump_entries)['PC_0'].tracks['1111']

        assert track.media_type == 'audio'
        assert track.packets_received == [0, 100, 200]
        assert track.packets_received_lost == [0, 1, 3]
        assert track.concealed_samples_received == [0, 480, 1440]
        assert track.received_timestamps == [1000, 2000, 3000]
        assert track.sent_timestamps == []
        assert track.start_time == 1000
        assert track.end_time == 3000

    def test_outbound_loss_carried_forward(self, dump_entries):
        """Remote inbound reports are sparse; the previous loss value is kept."""
        track = DumpExtractor().extract(dump_entries)['PC_0'].tracks['2222']

        assert track.packets_sent == [0, 500, 1000]
        assert track.packets_sent_lost == [0, 0, 10]

    def test_connection_flags(self, dump_entries):
        pc_data = DumpExtractor().extract(dump_entries)['PC_0']

        assert pc_data.is_p2p is False
        assert pc_data.uses_relay is True
        assert pc_data.dtls_errors == 1
        assert pc_data.dtls_failure is False
        assert pc_data.last_ice_disconnect == 3500
        assert pc_data.last_ice_failure is None
        assert [entry.state for entry in pc_data.connection_states] == [
            'checking', 'connected', 'disconnected', 'connected'
        ]

    def test_session_bounds(self, dump_entries):
        pc_data = DumpExtractor().extract(dump_entries)['PC_0']

        assert pc_data.start_time == 1000
        assert pc_data.end_time == 61000

    def test_end_defaults_to_last_entry(self, dump_entries):
        pc_data = DumpExtractor().extract(dump_entries[:-2])['PC_0']

        assert pc_data.end_time == 3800

    def test_rtts_and_candidate_pair(self, dump_entries):
        pc_data = DumpExtractor().extract(dump_entries)['PC_0']

        assert pc_data.transport.rtts == pytest.approx([50, 50, 70])
        assert pc_data.candidate_pair_data.local_address == '10.0.0.x'
        assert pc_data.candidate_pair_data.remote_address == '192.168.1.x'
        assert pc_data.candidate_pair_data.remote_candidate_type == 'host'

    def test_failure_events(self):
        entries = [
            ['createOfferOnFailure', 'PC_1', 'error', 10],
            ['setRemoteDescriptionOnFailure', 'PC_1', 'error', 20],
            ['ondtlsstatechange', 'PC_1', 'failed', 30],
            ['oniceconnectionstatechange', 'PC_1', 'failed', 40],
        ]

        pc_data = DumpExtractor().extract(entries)['PC_1']

        assert pc_data.sdp_create_failure is True
        assert pc_data.sdp_set_failure is True
        assert pc_data.dtls_failure is True
        assert pc_data.last_ice_failure == 40

    def test_malformed_entry(self):
        with pytest.raises(ValidationError):
            DumpExtractor().extract([['getstats']])

    def test_bidirectional_track_keeps_timestamps_per_direction(self):
        """A stream reported both inbound and outbound is timed once per direction."""
        def stats(received, lost, sent):
            return {
                'IT01': {'type': 'inbound-rtp', 'ssrc': 3333, 'kind': 'video',
                         'packetsReceived': received, 'packetsLost': lost},
                'OT01': {'type': 'outbound-rtp', 'ssrc': 3333, 'kind': 'video', 'packetsSent': sent},
            }

        entries = [
            ['getstats', 'PC_2', stats(0, 0, 0), 1000],
            ['getstats', 'PC_2', stats(100, 0, 50), 2000],
            ['getstats', 'PC_2', stats(200, 30, 100), 3000],
            ['getstats', 'PC_2', stats(300, 30, 150), 4000],
        ]

        samples = DumpExtractor().extract(entries)
        track = samples['PC_2'].tracks['3333']

        assert track.received_timestamps == [1000, 2000, 3000, 4000]
        assert track.sent_timestamps == [1000, 2000, 3000, 4000]
        assert track.start_time == 1000
        assert track.end_time == 4000

        receiver = StatsAggregator().calculate_aggregates(samples)['PC_2'].tracks.receiver_tracks[0]

        assert receiver.freeze_duration == pytest.approx(1.0)
        assert receiver.freeze_percentage == pytest.approx(10.0)

    def test_identity_entry_sets_session_id(self, dump_entries):
        try:
            DumpExtractor().extract(dump_entries)

            assert session_id_var.get() == 'c1'
        finally:
            CorrelationIdManager.clear()

    def test_extracted_samples_aggregate(self, dump_entries):
        samples = DumpExtractor().extract(dump_entries)

        aggregate = StatsAggregator().calculate_aggregates(samples)['PC_0']

        assert aggregate.ice_reconnects == 1
        assert aggregate.pc_session_duration_ms == 60000
        assert aggregate.transport_aggregates.mean_rtt == 56.67
        assert aggregate.track_aggregates.total_packets_received == 200
        assert aggregate.track_aggregates.total_sent_packets_lost == 10


class TestLoadDump:
    """Test reading newline delimited dumps."""

    def test_load(self, tmp_path, dump_entries):
        path = tmp_path / 'dump.ndjson'
        path.write_text('\n'.join(json.dumps(entry) for entry in dump_entries) + '\n\n')

        assert load_dump(path) == dump_entries

    def test_invalid_line(self, tmp_path):
        path = tmp_path / 'dump.ndjson'
        path.write_text('["create", "PC_0", {}, 1]\n{not json\n')

        with pytest.raises(InputFormatError) as exc_info:
            load_dump(path)

        assert exc_info.value.details['line_number'] == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputFormatError):
            load_dump(tmp_path / 'missing.ndjson')

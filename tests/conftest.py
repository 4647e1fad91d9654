"""
Shared test fixtures for the rtcstats features tests.

Provides raw collector output for typical peer connections so the engine,
publisher and CLI tests work from the same sessions.
"""

import pytest
import sys
import os
from typing import Dict, Any

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))


# ============================================================================
# RAW SAMPLE FIXTURES
# ============================================================================

@pytest.fixture
def audio_receiver_track() -> Dict[str, Any]:
    """Receive-only audio track with light loss."""
    return {
        'ssrc': 1111,
        'mediaType': 'audio',
        'packetsReceived': [0, 100, 200],
        'packetsReceivedLost': [0, 1, 3],
        'totalSamplesReceived': [0, 48000, 96000],
        'concealedSamplesReceived': [0, 480, 960],
        'timestamps': [1000, 2000, 3000],
        'startTime': 1000,
        'endTime': 3000,
    }


@pytest.fixture
def video_sender_track() -> Dict[str, Any]:
    """Send-only camera track."""
    return {
        'ssrc': 2222,
        'mediaType': 'video',
        'videoType': 'camera',
        'packetsSent': [0, 500, 1000, 1500],
        'packetsSentLost': [0, 5, 10, 20],
        'timestamps': [1000, 2000, 3000, 4000],
        'startTime': 1000,
        'endTime': 4000,
    }


@pytest.fixture
def pc_raw(audio_receiver_track, video_sender_track) -> Dict[str, Any]:
    """Collector output of a relayed JVB connection that reconnected once."""
    return {
        'isP2P': False,
        'usesRelay': True,
        'dtlsErrors': 0,
        'dtlsFailure': False,
        'sdpCreateFailure': False,
        'sdpSetFailure': False,
        'connectionStates': [
            {'state': 'checking', 'timestamp': 900},
            {'state': 'connected', 'timestamp': 1000},
            {'state': 'disconnected', 'timestamp': 2500},
            {'state': 'connected', 'timestamp': 2700},
        ],
        'candidatePairData': {
            'localAddress': '10.0.0.x',
            'localCandidateType': 'relay',
            'localProtocol': 'udp',
            'remoteAddress': '192.168.1.x',
            'remoteCandidateType': 'host',
            'remoteProtocol': 'udp',
        },
        'transport': {'rtts': [40, 50, 61]},
        'inboundVideoExperiences': [
            {
                'upperBound': {'frameHeight': 720, 'framesPerSecond': 30},
                'lowerBound': {'frameHeight': 360, 'framesPerSecond': 15},
            },
            {
                'upperBound': {'frameHeight': 1080, 'framesPerSecond': 30},
                'lowerBound': {'frameHeight': 180, 'framesPerSecond': 15},
            },
        ],
        'tracks': {
            'audio-msid': audio_receiver_track,
            'video-msid': video_sender_track,
        },
        'startTime': 1000,
        'endTime': 61000,
    }


@pytest.fixture
def session_samples(pc_raw) -> Dict[str, Any]:
    """Session with one regular connection and one callstats connection."""
    return {
        'PC_0': pc_raw,
        'PC_1': {'isCallstats': True, 'transport': {'rtts': [10]}},
    }

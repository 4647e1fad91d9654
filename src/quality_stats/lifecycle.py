"""
Connection lifecycle metrics derived from the connection state timeline.
"""

from .models import PeerConnectionData

CONNECTED = 'connected'
FAILED = 'failed'


def calculate_reconnects(pc_data: PeerConnectionData) -> int:
    """
    Number of times the connection came back to ``connected``.

    The first ``connected`` state is the initial connection. Repeated
    ``connected`` entries without a state change in between are one
    connection.
    """
    connects = 0
    previous = None
    for entry in pc_data.connection_states:
        # Count transitions, not entries: [connected, disconnected, connected,
        # connected] is exactly one reconnect.
        if entry.state == CONNECTED and previous != CONNECTED:
            connects += 1
        previous = entry.state

    return connects - 1 if connects > 0 else 0


def did_connection_fail(pc_data: PeerConnectionData) -> bool:
    return any(entry.state == FAILED for entry in pc_data.connection_states)


def calculate_session_duration_ms(pc_data: PeerConnectionData) -> float:
    """Time the connection was active since ICE first connected, 0 if unknown."""
    start_time, end_time = pc_data.start_time, pc_data.end_time

    if start_time and end_time and end_time > start_time:
        return end_time - start_time

    return 0

"""
Freeze detection over cumulative receive counters.

A freeze is a run of samples whose instantaneous loss rate meets or exceeds a
threshold. Freeze durations are measured with the samples' own collection
timestamps, so the result does not depend on when or how fast it is computed.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .series_math import percent_of

logger = logging.getLogger(__name__)

DEFAULT_FREEZE_THRESHOLD = 5.0


@dataclass(frozen=True)
class FreezeResult:
    freeze_percentage: float = 0
    freeze_duration: Optional[float] = 0  # seconds, None when the samples carry no timing


def _loss_rate(lost: float, received: float) -> float:
    if received <= 0:
        return math.inf if lost > 0 else 0.0
    return lost / received * 100


def _sample_times(
    sample_count: int,
    timestamps: Optional[Sequence[float]],
    start_time: Optional[float],
    end_time: Optional[float]
) -> Optional[List[float]]:
    """
    Collection time of every sample.

    Counters are sampled at one cadence, so a track that only reports its
    start and end time gets evenly spaced sample times between the two.
    """
    if timestamps:
        return list(timestamps)
    if start_time is None or end_time is None or end_time < start_time:
        return None
    if sample_count < 2:
        return [start_time] * sample_count
    step = (end_time - start_time) / (sample_count - 1)
    return [start_time + index * step for index in range(sample_count)]


def calculate_freeze(
    packets: Sequence[float],
    packets_lost: Sequence[float],
    freeze_threshold: float = DEFAULT_FREEZE_THRESHOLD,
    timestamps: Optional[Sequence[float]] = None,
    start_time: Optional[float] = None,
    end_time: Optional[float] = None
) -> Optional[FreezeResult]:
    """
    Detect freezes and report how much of the traffic and time they covered.

    Args:
        packets: Cumulative packets received at each sample.
        packets_lost: Packets lost during each sampling interval.
        freeze_threshold: Loss rate (percent) at which a sample counts as frozen.
        timestamps: Collection time of each sample, epoch milliseconds.
        start_time: First sample time, used with ``end_time`` when
            ``timestamps`` is not available.
        end_time: Last sample time.

    Returns:
        FreezeResult, or None when the series are empty or misaligned. The
        freeze duration is None when a freeze was found but no sample timing
        is known.
    """
    if not packets or len(packets) != len(packets_lost):
        logger.warning(
            f"Invalid freeze input: {len(packets)} packet samples, {len(packets_lost)} loss samples"
        )
        return None

    if timestamps and len(timestamps) != len(packets):
        logger.warning(
            f"Invalid freeze input: {len(timestamps)} timestamps for {len(packets)} samples"
        )
        return None

    sample_times = _sample_times(len(packets), timestamps, start_time, end_time)

    freeze_start: Optional[int] = None
    frozen_intervals = []
    total_lost_frozen = 0.0

    for index in range(1, len(packets)):
        received = packets[index] - packets[index - 1]
        lost = packets_lost[index]

        if _loss_rate(lost, received) >= freeze_threshold:
            if freeze_start is None:
                freeze_start = index
            total_lost_frozen += lost
        elif freeze_start is not None:
            frozen_intervals.append((freeze_start, index))
            freeze_start = None

    # A freeze still running at the last sample lasts until that sample.
    if freeze_start is not None:
        frozen_intervals.append((freeze_start, len(packets) - 1))

    if total_lost_frozen == 0:
        return FreezeResult(freeze_percentage=0, freeze_duration=0)

    freeze_duration = None
    if sample_times is not None:
        freeze_duration = sum(sample_times[end] - sample_times[start] for start, end in frozen_intervals) / 1000

    return FreezeResult(
        freeze_percentage=percent_of(total_lost_frozen, packets[-1]),
        freeze_duration=freeze_duration,
    )

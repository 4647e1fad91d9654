"""
Numeric helpers used by the quality statistics engine.

Division by zero is part of the contract here, not an error: percentages fall
back to zero and means of empty series are reported as ``None`` so callers
can leave them out of the output.
"""

import math
from functools import reduce
from typing import Iterable, List, Optional, Sequence

import numpy as np


def percent_of(part: Optional[float], whole: Optional[float]) -> float:
    """Return ``part`` as a percentage of ``whole``, or 0 when ``whole`` is zero."""
    if not whole or part is None:
        return 0
    return 100 * part / whole


def round_to(value: Optional[float], decimals: int = 2) -> Optional[float]:
    if value is None or math.isnan(value):
        return value
    return round(value, decimals)


def average(accumulator: float, value: float) -> float:
    """Reducer summing a series; divide by the series length afterwards."""
    return accumulator + value


def mean(series: Iterable[Optional[float]]) -> Optional[float]:
    """
    Arithmetic mean of ``series``.

    Returns ``None`` when the mean is undefined: an empty series, or one with
    a missing or NaN entry.
    """
    values = list(series)
    if not values or any(value is None for value in values):
        return None
    result = reduce(average, values, 0) / len(values)
    if math.isnan(result):
        return None
    return result


def series_differences(series: Sequence[float]) -> List[float]:
    """Convert a series of ever increasing values into the series of its differences."""
    return [current - previous for previous, current in zip(series, series[1:])]


def standardized_moment(series: Sequence[float], order: int) -> float:
    """
    Moment of the given order standardized by the population standard deviation.

    An empty series yields 0.0. A series without variance yields NaN.
    """
    values = np.asarray(series, dtype=float)
    if values.size == 0:
        return 0.0
    deviation = values.std()
    with np.errstate(divide='ignore', invalid='ignore'):
        return float(np.mean(((values - values.mean()) / deviation) ** order))

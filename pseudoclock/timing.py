"""Contains functions for converting times to integer time units.

All the tick arithmetic of the compiler is done on integer multiples of a time
resolution.
This avoids floating point errors when comparing instruction times, when checking
that a ramp fits an integer number of samples and when coalescing ticks with the
same period.
"""

import math
from typing import NewType, SupportsFloat

TimeUnits = NewType("TimeUnits", int)
"""A time expressed as an integer number of time resolution steps."""

DEFAULT_TIME_RESOLUTION = 1e-10
"""Default time resolution in seconds.

Instruction times are rounded to the nearest 0.1 ns.
"""


def units_per_second(time_resolution: float) -> int:
    """Returns the number of time units in one second.

    Raises:
        ValueError: If the time resolution is not the inverse of an integer.
    """

    if not time_resolution > 0:
        raise ValueError(f"Time resolution must be positive, got {time_resolution}")
    scale = round(1 / time_resolution)
    if scale < 1 or not math.isclose(scale * time_resolution, 1.0, rel_tol=1e-9):
        raise ValueError(
            f"Time resolution {time_resolution} s must divide one second exactly"
        )
    return scale


def to_units(time: SupportsFloat, scale: int) -> TimeUnits:
    """Returns the nearest number of time units for a time in seconds.

    Args:
        time: The time in seconds.
        scale: The number of time units in one second.
    """

    return TimeUnits(round(float(time) * scale))


def to_seconds(units: int, scale: int) -> float:
    """Converts a number of time units back to seconds.

    The division is correctly rounded, so that `to_seconds(to_units(t))` is the float
    closest to `t` when `t` is a multiple of the time resolution.
    """

    return units / scale


def period_to_units(sample_rate: SupportsFloat, scale: int) -> TimeUnits:
    """Returns the nearest number of time units for the period of a sample rate."""

    return TimeUnits(round(scale / float(sample_rate)))

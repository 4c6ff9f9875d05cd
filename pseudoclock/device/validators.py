"""Checks shared by the devices to ensure compiled data fit their capabilities.

All the checks raise :class:`DeviceLimitError` when a limit is exceeded.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import ArrayLike

from ._compiled import CompiledOutputs
from ..formatter import fmt
from ..types.exceptions import DeviceLimitError


def check_minimum_interval(compiled: CompiledOutputs, minimum: float) -> None:
    """Checks that the clock of a device never ticks faster than it can update."""

    interval = compiled.program.minimum_interval(compiled.rate)
    if interval is not None and interval < minimum * (1 - 1e-9):
        raise DeviceLimitError(
            fmt(
                "{:device} is clocked every {:duration}, but it can't be updated "
                "faster than every {:duration}",
                compiled.device,
                interval,
                minimum,
            ),
            device=compiled.device,
        )


def check_sample_count(compiled: CompiledOutputs, maximum: int) -> None:
    """Checks that the samples of a device fit in its buffer."""

    count = compiled.number_of_ticks
    if count > maximum:
        raise DeviceLimitError(
            fmt(
                "{:device} needs {} samples, but its buffer can only hold {}",
                compiled.device,
                count,
                maximum,
            ),
            device=compiled.device,
        )


def check_value_range(
    compiled: CompiledOutputs,
    channel: str,
    low: float,
    high: float,
    values: Optional[ArrayLike] = None,
) -> None:
    """Checks that the samples of a channel are within the range of the device.

    Args:
        compiled: The compiled outputs of the device.
        channel: The name of the channel to check.
        low: The lowest value the device can output.
        high: The highest value the device can output.
        values: If given, the values to check instead of the raw samples of the
            channel.
    """

    if values is None:
        values = compiled[channel]
    values = np.asarray(values)
    outside = (values < low) | (values > high)
    if np.any(outside):
        index = int(np.argmax(outside))
        time = float(compiled.program.tick_times(compiled.rate)[index])
        raise DeviceLimitError(
            fmt(
                "{:output} of {:device} takes the value {} at {:time}, outside of the "
                "range [{}, {}] of the device",
                channel,
                compiled.device,
                values[index],
                time,
                low,
                high,
            ),
            device=compiled.device,
            output=channel,
            time=time,
        )

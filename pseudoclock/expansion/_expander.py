from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ..clock import ClockProgram, ClockRate
from ..formatter import fmt
from ..instructions import Constant, Ramp, Timeline
from ..outputs import AnalogOutput, DigitalOutput, CompositeOutput, Limits
from ..timing import to_units
from ..types.exceptions import DeviceLimitError, RampEvaluationError

logger = logging.getLogger(__name__)


def expand_timeline(
    timeline: Timeline,
    program: ClockProgram,
    *,
    rate: ClockRate = ClockRate.FAST,
    default: float = 0.0,
    limits: Optional[Limits] = None,
    output: Optional[str] = None,
    device: Optional[str] = None,
) -> NDArray[np.float64]:
    """Computes the value of an output at each tick of a clock.

    The output takes its default value until its first instruction, then holds the
    value of each constant until the next instruction.
    During a ramp, each tick takes the value of the ramp function at the fraction of
    the ramp elapsed, and after the ramp the output holds its final value.

    The clock program is walked record by record so that the tick times are never
    all computed at once.

    Args:
        timeline: The instructions of the output.
        program: The compiled clock of the pseudoclock driving the output.
        rate: The clock of the pseudoclock the output listens to.
        default: The value before the first instruction.
        limits: If set, the inclusive range of allowed values.
        output: The name of the output, used in error messages.
        device: The name of the device of the output, used in error messages.

    Returns:
        An array with one value per tick of the clock.

    Raises:
        DeviceLimitError: If the default value or a constant is outside the limits.
        RampEvaluationError: If a ramp gives a non-finite value or a value outside
            the limits.
    """

    scale = program.units_per_second
    _check_constants(timeline, default, limits, output, device)
    starts = np.array(
        [to_units(instruction.time, scale) for instruction in timeline],
        dtype=np.int64,
    )
    # Position 0 stands for the time before the first instruction.
    held = np.full(len(timeline) + 1, np.nan, dtype=np.float64)
    held[0] = default
    is_ramp = np.zeros(len(timeline) + 1, dtype=np.bool_)
    for slot, instruction in enumerate(timeline, start=1):
        if isinstance(instruction, Constant):
            held[slot] = instruction.value
        elif isinstance(instruction, Ramp):
            is_ramp[slot] = True
        else:
            raise TypeError(fmt("Can't expand {} on {:output}", instruction, output))

    result = np.empty(program.number_of_ticks(rate), dtype=np.float64)
    position = 0
    for block in program.iter_blocks(rate):
        times = block.times()
        values = result[position : position + block.repetitions]
        position += block.repetitions
        indices = np.searchsorted(starts, times, side="right")
        values[:] = held[indices]

        # Tick times increase inside a block, so each instruction covers a slice.
        segment_starts = np.flatnonzero(np.diff(indices, prepend=-1))
        segment_stops = np.append(segment_starts[1:], len(indices))
        ramp_segments = is_ramp[indices[segment_starts]]
        for begin, end in zip(
            segment_starts[ramp_segments], segment_stops[ramp_segments]
        ):
            index = int(indices[begin]) - 1
            values[begin:end] = _evaluate_ramp(
                timeline[index],
                int(starts[index]),
                times[begin:end],
                scale,
                limits,
                output,
                device,
            )
    return result


def _check_constants(
    timeline: Timeline,
    default: float,
    limits: Optional[Limits],
    output: Optional[str],
    device: Optional[str],
) -> None:
    if limits is None:
        return
    low, high = limits
    if not low <= default <= high:
        raise DeviceLimitError(
            fmt(
                "Default value {} of {:output} is outside the limits {}",
                default,
                output,
                limits,
            ),
            device=device,
            output=output,
        )
    for instruction in timeline:
        if isinstance(instruction, Constant) and not (
            low <= instruction.value <= high
        ):
            raise DeviceLimitError(
                fmt(
                    "{} on {:output} is outside the limits {}",
                    instruction,
                    output,
                    limits,
                ),
                device=device,
                output=output,
                time=instruction.time,
            )


def _evaluate_ramp(
    ramp: Ramp,
    start: int,
    times: NDArray[np.int64],
    scale: int,
    limits: Optional[Limits],
    output: Optional[str],
    device: Optional[str],
) -> NDArray[np.float64]:
    stop = to_units(ramp.end, scale)
    fractions = np.minimum((times - start) / (stop - start), 1.0)
    try:
        values = ramp.evaluate(fractions)
    except (ArithmeticError, ValueError, TypeError) as error:
        raise RampEvaluationError(
            fmt("Could not evaluate {} on {:output}", ramp, output),
            device=device,
            output=output,
            time=ramp.time,
        ) from error
    invalid = ~np.isfinite(values)
    if limits is not None:
        low, high = limits
        invalid |= (values < low) | (values > high)
    if np.any(invalid):
        first = int(np.argmax(invalid))
        time = times[first] / scale
        raise RampEvaluationError(
            fmt(
                "{} on {:output} gives the invalid value {} at {:time}",
                ramp,
                output,
                values[first],
                time,
            ),
            device=device,
            output=output,
            time=time,
        )
    return values


@functools.singledispatch
def expand_output(
    output,
    program: ClockProgram,
    rate: ClockRate = ClockRate.FAST,
    device: Optional[str] = None,
) -> NDArray | Mapping[str, NDArray]:
    """Computes the raw samples of an output at each tick of its clock.

    Returns:
        A float array for an analog output, a boolean array for a digital output and
        a mapping from channel name to array for a composite output.
    """

    raise NotImplementedError(f"Can't expand output of type {type(output)}")


@expand_output.register
def _expand_analog_output(
    output: AnalogOutput,
    program: ClockProgram,
    rate: ClockRate = ClockRate.FAST,
    device: Optional[str] = None,
) -> NDArray[np.float64]:
    values = expand_timeline(
        output.timeline,
        program,
        rate=rate,
        default=output.default,
        limits=output.limits,
        output=output.name,
        device=device,
    )
    logger.debug("Expanded %s to %d samples", output, len(values))
    return values


@expand_output.register
def _expand_digital_output(
    output: DigitalOutput,
    program: ClockProgram,
    rate: ClockRate = ClockRate.FAST,
    device: Optional[str] = None,
) -> NDArray[np.bool_]:
    for instruction in output.timeline:
        if isinstance(instruction, Constant) and instruction.value not in (0.0, 1.0):
            raise DeviceLimitError(
                fmt("{} on digital {:output} must be 0 or 1", instruction, output.name),
                device=device,
                output=output.name,
                time=instruction.time,
            )
    values = expand_timeline(
        output.timeline,
        program,
        rate=rate,
        default=float(output.default),
        output=output.name,
        device=device,
    )
    invalid = (values != 0.0) & (values != 1.0)
    if np.any(invalid):
        first = int(np.argmax(invalid))
        time = float(program.tick_times(rate)[first])
        raise DeviceLimitError(
            fmt(
                "Digital {:output} takes the value {} at {:time}, it must be 0 or 1",
                output.name,
                values[first],
                time,
            ),
            device=device,
            output=output.name,
            time=time,
        )
    logger.debug("Expanded %s to %d samples", output, len(values))
    return values.astype(np.bool_)


@expand_output.register
def _expand_composite_output(
    output: CompositeOutput,
    program: ClockProgram,
    rate: ClockRate = ClockRate.FAST,
    device: Optional[str] = None,
) -> dict[str, NDArray]:
    return {
        channel.name: expand_output(channel, program, rate, device)
        for channel in output.channels()
    }

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

import attrs

from ._records import ClockProgram, ClockRate, WaitMarker
from ._run_length import RecordBuilder
from ..formatter import fmt
from ..instructions import Ramp, Timeline, Wait
from ..settings import CompilerSettings
from ..timing import to_units, period_to_units
from ..types.exceptions import (
    DeviceLimitError,
    InvalidValueError,
    TimelineConflictError,
)

logger = logging.getLogger(__name__)


@attrs.frozen
class ClockedTimeline:
    """The timeline of an output together with the clock it listens to.

    Attributes:
        output: The name of the output.
        timeline: The instructions of the output.
        rate: The clock of the pseudoclock the output is clocked by.
        device: The name of the device the output belongs to, used in error
            messages.
    """

    output: str
    timeline: Timeline = attrs.field(
        validator=attrs.validators.instance_of(Timeline)
    )
    rate: ClockRate = ClockRate.FAST
    device: Optional[str] = None


@attrs.frozen
class _RampSpan:
    start: int
    stop: int
    period: int
    output: str
    device: Optional[str]
    ramp: Ramp


def compile_clock(
    timelines: Iterable[ClockedTimeline],
    stop_time: float,
    waits: Iterable[Wait] = (),
    settings: Optional[CompilerSettings] = None,
    clock_name: Optional[str] = None,
) -> ClockProgram:
    """Computes the clock program that drives the outputs of a pseudoclock.

    The clock ticks at every time where an output changes instruction, at the end of
    every ramp and at every sample of a ramp.
    The slow clock only ticks at the first of these, the fast clock ticks at all of
    them.

    Args:
        timelines: The timelines of all the outputs clocked by the pseudoclock.
        stop_time: The time in seconds at which the shot ends.
            No instruction can start at or after this time.
        waits: The waits of the pseudoclock.
            They must be strictly between 0 and the stop time.
        settings: The compiler settings.
            If not given, the default settings are used.
        clock_name: The name of the pseudoclock, used in error messages.

    Returns:
        The run-length encoded clock program.

    Raises:
        TimelineConflictError: If the instructions can't be realized by a single
            clock.
        DeviceLimitError: If the number of instructions or records exceeds
            :attr:`CompilerSettings.max_instructions`.
    """

    if settings is None:
        settings = CompilerSettings()
    timelines = list(timelines)
    waits = list(waits)
    scale = settings.units_per_second

    stop = to_units(stop_time, scale)
    if not stop > 0:
        raise InvalidValueError(f"Stop time must be positive, got {stop_time}")

    if settings.max_instructions is not None:
        count = sum(len(clocked.timeline) for clocked in timelines) + len(waits)
        if count > settings.max_instructions:
            raise DeviceLimitError(
                fmt(
                    "{:device} has {} instructions, which exceeds the maximum of {}",
                    clock_name,
                    count,
                    settings.max_instructions,
                ),
                device=clock_name,
            )

    wait_times = _check_waits(waits, stop, scale, clock_name)
    owners: dict[int, str] = {stop: "the end of the shot"}
    for wait_time, wait in zip(wait_times, waits):
        owners[wait_time] = fmt("{:wait}", wait.name)
    ramps: list[_RampSpan] = []
    for clocked in timelines:
        ramps.extend(_collect_boundaries(clocked, stop, scale, wait_times, owners))

    boundaries = sorted({0, *owners} - {stop})
    ramps.sort(key=lambda span: span.start)
    markers = {
        wait_time: WaitMarker(wait.name, wait.time, wait.timeout)
        for wait_time, wait in zip(wait_times, waits)
    }

    builder = RecordBuilder(scale, settings.wait_resumption)
    active: list[_RampSpan] = []
    next_ramp = 0
    for index, boundary in enumerate(boundaries):
        if boundary in markers:
            builder.add_wait(markers[boundary], boundary)
        following = boundaries[index + 1] if index + 1 < len(boundaries) else stop
        active = [span for span in active if span.stop > boundary]
        while next_ramp < len(ramps) and ramps[next_ramp].start <= boundary:
            active.append(ramps[next_ramp])
            next_ramp += 1
        if not active:
            builder.add_ticks(boundary, following - boundary, 1, True)
            continue
        span = min(active, key=lambda ramp: ramp.period)
        period = span.period
        length = following - boundary
        if length % period:
            raise TimelineConflictError(
                fmt(
                    "{} on {:output} can't be sampled an integer number of times "
                    "between {:time} and {:time}, where it is interrupted by {}",
                    span.ramp,
                    span.output,
                    boundary / scale,
                    following / scale,
                    owners[following],
                ),
                device=span.device,
                output=span.output,
                time=following / scale,
            )
        builder.add_ticks(boundary, period, 1, True)
        if length > period:
            builder.add_ticks(boundary + period, period, length // period - 1, False)

    records = builder.build()
    if settings.max_instructions is not None:
        if len(records) > settings.max_instructions:
            raise DeviceLimitError(
                fmt(
                    "The clock program of {:device} has {} records, which exceeds the "
                    "maximum of {}",
                    clock_name,
                    len(records),
                    settings.max_instructions,
                ),
                device=clock_name,
            )
    program = ClockProgram(records, settings.time_resolution, settings.wait_resumption)
    logger.debug(
        "Compiled clock of %s: %d boundaries, %d records, %d ticks",
        clock_name,
        len(boundaries),
        len(records),
        program.number_of_ticks(ClockRate.FAST),
    )
    return program


def _check_waits(
    waits: list[Wait], stop: int, scale: int, clock_name: Optional[str]
) -> list[int]:
    times = []
    previous = 0
    for wait in waits:
        if not isinstance(wait, Wait):
            raise TimelineConflictError(
                fmt(
                    "Only waits can be scheduled on {:device}, got {}", clock_name, wait
                ),
                device=clock_name,
                time=getattr(wait, "time", None),
            )
        time = to_units(wait.time, scale)
        if not (previous < time < stop):
            raise TimelineConflictError(
                fmt(
                    "{} must be strictly after the previous wait and the start of the "
                    "shot, and strictly before the end of the shot",
                    wait,
                ),
                device=clock_name,
                time=wait.time,
            )
        times.append(time)
        previous = time
    return times


def _collect_boundaries(
    clocked: ClockedTimeline,
    stop: int,
    scale: int,
    wait_times: list[int],
    owners: dict[int, str],
) -> list[_RampSpan]:
    """Checks an output timeline and adds its boundaries to `owners`.

    Returns:
        The ramps of the timeline in time units.
    """

    output = clocked.output
    ramps = []
    earliest = 0
    previous_ramp: Optional[Ramp] = None
    for instruction in clocked.timeline:
        if isinstance(instruction, Wait):
            raise TimelineConflictError(
                fmt(
                    "{} is on {:output}, but waits can only be scheduled on a "
                    "clocking device",
                    instruction,
                    output,
                ),
                device=clocked.device,
                output=output,
                time=instruction.time,
            )
        start = to_units(instruction.time, scale)
        if start >= stop:
            raise TimelineConflictError(
                fmt(
                    "{} on {:output} is scheduled at or after the end of the shot at "
                    "{:time}",
                    instruction,
                    output,
                    stop / scale,
                ),
                device=clocked.device,
                output=output,
                time=instruction.time,
            )
        if start < earliest and previous_ramp is not None:
            raise TimelineConflictError(
                fmt(
                    "{} on {:output} starts before the end of {}",
                    instruction,
                    output,
                    previous_ramp,
                ),
                device=clocked.device,
                output=output,
                time=instruction.time,
            )
        if start < earliest:
            raise TimelineConflictError(
                fmt(
                    "{} on {:output} can't be distinguished from the previous "
                    "instruction at the time resolution of {:duration}",
                    instruction,
                    output,
                    1 / scale,
                ),
                device=clocked.device,
                output=output,
                time=instruction.time,
            )
        owners.setdefault(start, fmt("{:output}", output))
        earliest = start + 1
        previous_ramp = None
        if isinstance(instruction, Ramp):
            span = _ramp_span(clocked, instruction, start, stop, scale, wait_times)
            owners.setdefault(span.stop, fmt("the end of {}", instruction))
            ramps.append(span)
            earliest = span.stop
            previous_ramp = instruction
    return ramps


def _ramp_span(
    clocked: ClockedTimeline,
    ramp: Ramp,
    start: int,
    stop: int,
    scale: int,
    wait_times: list[int],
) -> _RampSpan:
    def conflict(message: str, time: float) -> TimelineConflictError:
        return TimelineConflictError(
            fmt("{} on {:output} {}", ramp, clocked.output, message),
            device=clocked.device,
            output=clocked.output,
            time=time,
        )

    if clocked.rate is ClockRate.SLOW:
        raise conflict(
            "is clocked by the slow clock, which only ticks when an output changes",
            ramp.time,
        )
    end = to_units(ramp.end, scale)
    if end <= start:
        raise conflict("is shorter than the time resolution", ramp.time)
    if end > stop:
        raise conflict(
            fmt("ends after the end of the shot at {:time}", stop / scale), ramp.end
        )
    period = period_to_units(ramp.sample_rate, scale)
    if period < 1:
        raise conflict(
            fmt("has a sample period shorter than {:duration}", 1 / scale), ramp.time
        )
    for wait_time in wait_times:
        if start < wait_time < end:
            raise conflict(
                fmt("spans the wait at {:time}", wait_time / scale), wait_time / scale
            )
    return _RampSpan(start, end, period, clocked.output, clocked.device, ramp)


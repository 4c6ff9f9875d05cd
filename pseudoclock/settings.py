"""Configuration of the compiler."""

from __future__ import annotations

import enum
from typing import Optional

import attrs

from .timing import DEFAULT_TIME_RESOLUTION, units_per_second
from .utils import serialization


class WaitResumption(enum.Enum):
    """Time base used for the ticks following a wait.

    Attributes:
        SCHEDULED: Times after a wait are measured on the nominal timeline of the
            shot, as if the trigger arrived exactly at the scheduled wait time.
        TRIGGERED: Each epoch has its own time origin at the arrival of the resume
            trigger.
            The origin times of the tick records and the bounds of the epochs are
            then relative to the start of their epoch.

    Tick periods are the same in both cases, since they are differences of
    boundary times within a single epoch.
    """

    SCHEDULED = "scheduled"
    TRIGGERED = "triggered"


def _check_time_resolution(instance, attribute, value: float) -> None:
    units_per_second(value)


def _check_positive_or_none(instance, attribute, value: Optional[int]) -> None:
    if value is not None and value < 1:
        raise ValueError(f"{attribute.name} must be at least 1, got {value}")


@attrs.frozen
class CompilerSettings:
    """Parameters controlling how shots are compiled.

    Attributes:
        time_resolution: Duration in seconds of the smallest time step.
            Instruction times are rounded to a multiple of this value.
            It must divide one second exactly.
        max_instructions: If set, the maximum number of instructions in all the
            timelines of a clocking device, and the maximum number of records in
            its compiled clock program.
            It is checked before any output is expanded.
        wait_resumption: How times after a wait are referenced.
        max_workers: Number of threads used to expand and encode devices once the
            clock is compiled.
            A value of 1 compiles devices sequentially.
        store_raw_outputs: Whether to store the raw sample arrays of each output
            alongside the encoded data of its device.
    """

    time_resolution: float = attrs.field(
        default=DEFAULT_TIME_RESOLUTION,
        converter=float,
        validator=_check_time_resolution,
    )
    max_instructions: Optional[int] = attrs.field(
        default=None, validator=_check_positive_or_none
    )
    wait_resumption: WaitResumption = attrs.field(
        default=WaitResumption.SCHEDULED,
        converter=WaitResumption,
    )
    max_workers: int = attrs.field(default=1, validator=attrs.validators.ge(1))
    store_raw_outputs: bool = True

    @property
    def units_per_second(self) -> int:
        """Number of time units in one second."""

        return units_per_second(self.time_resolution)


def settings_from_json(data: str | bytes) -> CompilerSettings:
    """Load compiler settings from a JSON string.

    Missing fields take their default values.
    """

    return serialization.from_json(data, CompilerSettings)


def settings_to_json(settings: CompilerSettings) -> str:
    return serialization.to_json(settings)

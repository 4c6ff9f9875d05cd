from __future__ import annotations

import math
from collections.abc import Iterator
from typing import Optional

import attrs

from ..instructions import Timeline
from ..types.exceptions import InvalidValueError

type Limits = tuple[float, float]
"""Inclusive range of the values an output can take."""


def _convert_limits(value) -> Optional[Limits]:
    if value is None:
        return None
    low, high = value
    return float(low), float(high)


def _validate_limits(instance, attribute, value: Optional[Limits]) -> None:
    if value is None:
        return
    low, high = value
    if math.isnan(low) or math.isnan(high) or low > high:
        raise InvalidValueError(f"Invalid limits {value} for {attribute.name}")


def _limits_field(default: Optional[Limits] = None):
    return attrs.field(
        default=default, converter=_convert_limits, validator=_validate_limits
    )


def _timeline_field():
    return attrs.field(
        factory=Timeline,
        converter=_to_timeline,
        validator=attrs.validators.instance_of(Timeline),
    )


def _to_timeline(value) -> Timeline:
    if isinstance(value, Timeline):
        return value
    return Timeline(value)


@attrs.frozen
class AnalogOutput:
    """An output that takes real values.

    Attributes:
        name: The name of the output.
            It must be unique within its device.
        timeline: The instructions of the output.
        default: The value of the output before its first instruction.
        limits: If set, the output can only take values in this inclusive range.
    """

    name: str = attrs.field(validator=attrs.validators.instance_of(str))
    timeline: Timeline = _timeline_field()
    default: float = attrs.field(default=0.0, converter=float)
    limits: Optional[Limits] = _limits_field()

    def channels(self) -> Iterator[AnalogOutput]:
        yield self

    def __str__(self) -> str:
        return f"analog output '{self.name}'"


@attrs.frozen
class DigitalOutput:
    """An output that is either low or high.

    The values of the instructions of the timeline must be 0 or 1.
    Ramps are allowed as long as all their samples are 0 or 1.

    Attributes:
        name: The name of the output.
            It must be unique within its device.
        timeline: The instructions of the output.
        default: The state of the output before its first instruction.
    """

    name: str = attrs.field(validator=attrs.validators.instance_of(str))
    timeline: Timeline = _timeline_field()
    default: bool = attrs.field(default=False, converter=bool)

    def channels(self) -> Iterator[DigitalOutput]:
        yield self

    def __str__(self) -> str:
        return f"digital output '{self.name}'"


@attrs.frozen
class CompositeOutput:
    """An output whose state is made of several independent values.

    This is typically a DDS channel that has a frequency, an amplitude and a phase,
    and optionally a gate that switches it on and off.
    Each component is compiled as its own channel named `<name>.<component>`.

    Attributes:
        name: The name of the output.
        frequency: The timeline of the frequency in Hz.
        amplitude: The timeline of the amplitude, as a fraction of the full scale.
        phase: The timeline of the phase offset in degrees.
        gate: The timeline of the gate, if the output has one.
        frequency_default: The frequency before the first frequency instruction.
        amplitude_default: The amplitude before the first amplitude instruction.
        phase_default: The phase before the first phase instruction.
        gate_default: The state of the gate before its first instruction.
    """

    name: str = attrs.field(validator=attrs.validators.instance_of(str))
    frequency: Timeline = _timeline_field()
    amplitude: Timeline = _timeline_field()
    phase: Timeline = _timeline_field()
    gate: Optional[Timeline] = attrs.field(
        default=None,
        converter=attrs.converters.optional(_to_timeline),
    )
    frequency_limits: Optional[Limits] = _limits_field((0.0, math.inf))
    amplitude_limits: Optional[Limits] = _limits_field((0.0, 1.0))
    phase_limits: Optional[Limits] = _limits_field()
    frequency_default: float = attrs.field(default=0.0, converter=float)
    amplitude_default: float = attrs.field(default=0.0, converter=float)
    phase_default: float = attrs.field(default=0.0, converter=float)
    gate_default: bool = attrs.field(default=False, converter=bool)

    def channels(self) -> Iterator[AnalogOutput | DigitalOutput]:
        """Yields the components of the output as independent channels."""

        yield AnalogOutput(
            f"{self.name}.frequency",
            self.frequency,
            default=self.frequency_default,
            limits=self.frequency_limits,
        )
        yield AnalogOutput(
            f"{self.name}.amplitude",
            self.amplitude,
            default=self.amplitude_default,
            limits=self.amplitude_limits,
        )
        yield AnalogOutput(
            f"{self.name}.phase",
            self.phase,
            default=self.phase_default,
            limits=self.phase_limits,
        )
        if self.gate is not None:
            yield DigitalOutput(
                f"{self.name}.gate", self.gate, default=self.gate_default
            )

    def __str__(self) -> str:
        return f"composite output '{self.name}'"


type Output = AnalogOutput | DigitalOutput | CompositeOutput
type Channel = AnalogOutput | DigitalOutput

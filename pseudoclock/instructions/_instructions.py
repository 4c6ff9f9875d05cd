from __future__ import annotations

import math
from collections.abc import Callable
from typing import SupportsFloat

import attrs
import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..formatter import fmt
from ..types.exceptions import InvalidValueError, TimelineConflictError

type RampFunction = Callable[[NDArray[np.float64]], ArrayLike]
"""A function that gives the value of a ramp.

It is called with an array of fractions of the ramp duration in the range [0, 1],
and must return an array of values with the same shape.
"""


def _valid_time(instance, attribute, value: float) -> None:
    if not math.isfinite(value) or value < 0:
        raise TimelineConflictError(
            f"Instructions must be scheduled at a finite non-negative time, got "
            f"{value}",
            time=value,
        )


def _finite_positive(instance, attribute, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise InvalidValueError(
            f"{attribute.name} must be finite and strictly positive, got {value}"
        )


@attrs.frozen
class Constant:
    """Sets an output to a value at a given time.

    The output holds this value until its next instruction.

    Attributes:
        time: The time in seconds at which the output takes the value.
        value: The value of the output.
    """

    time: float = attrs.field(converter=float, validator=_valid_time)
    value: float = attrs.field(converter=float)

    def __str__(self) -> str:
        return fmt("{} at {:time}", self.value, self.time)


@attrs.frozen
class Ramp:
    """Sweeps an output through the values of a function.

    The ramp occupies the interval [time, time + duration).
    It is sampled every 1 / sample_rate seconds starting from its start time, and
    at each sample the output takes the value `function((t - time) / duration)`.

    Once the ramp is over, the output holds the final value `function(1)` until its
    next instruction.

    Attributes:
        time: The start time of the ramp in seconds.
        duration: The duration of the ramp in seconds.
        function: The shape of the ramp, see :data:`RampFunction`.
        sample_rate: The rate in Hz at which the ramp is sampled.
    """

    time: float = attrs.field(converter=float, validator=_valid_time)
    duration: float = attrs.field(converter=float, validator=_finite_positive)
    function: RampFunction = attrs.field(
        validator=attrs.validators.is_callable()
    )
    sample_rate: float = attrs.field(converter=float, validator=_finite_positive)

    @property
    def end(self) -> float:
        """The time at which the ramp stops."""

        return self.time + self.duration

    def evaluate(self, fractions: ArrayLike) -> NDArray[np.float64]:
        """Evaluates the ramp function at the given fractions of its duration."""

        fractions = np.asarray(fractions, dtype=np.float64)
        values = np.asarray(self.function(fractions), dtype=np.float64)
        return np.broadcast_to(values, fractions.shape)

    def final_value(self) -> float:
        return float(self.evaluate(np.array([1.0]))[0])

    def __str__(self) -> str:
        return fmt(
            "{} from {:time} during {:duration} at {:rate}",
            self.function,
            self.time,
            self.duration,
            self.sample_rate,
        )


@attrs.frozen
class Wait:
    """Halts the clock until an external trigger is received.

    Waits are only valid on the timeline of a clocking device.
    The clock resumes ticking at the wait time once the trigger arrives, starting a
    new epoch.

    Attributes:
        time: The time at which the clock stops.
        name: A label for the wait, used to report its duration after a shot.
        timeout: Maximum time in seconds to wait for the trigger.
            This is only stored with the compiled data for the runtime to use.
    """

    time: float = attrs.field(converter=float, validator=_valid_time)
    name: str = attrs.field(validator=attrs.validators.instance_of(str))
    timeout: float = attrs.field(default=5.0, converter=float)

    def __str__(self) -> str:
        return fmt("{:wait} at {:time}", self.name, self.time)


type OutputInstruction = Constant | Ramp
type Instruction = Constant | Ramp | Wait


def constant(time: SupportsFloat, value: SupportsFloat) -> Constant:
    return Constant(float(time), float(value))


def ramp(
    time: SupportsFloat,
    duration: SupportsFloat,
    function: RampFunction,
    sample_rate: SupportsFloat,
) -> Ramp:
    return Ramp(float(time), float(duration), function, float(sample_rate))

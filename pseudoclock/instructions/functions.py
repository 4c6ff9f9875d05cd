"""Shapes that can be used as the function of a ramp.

All shapes are called with the fraction of the ramp duration elapsed, an array of
values in [0, 1], and return the value of the output at these fractions.
They are frozen attrs classes rather than closures so that they compare by value
and can be pickled along with the timelines.
"""

from __future__ import annotations

import attrs
import numpy as np
from numpy.typing import NDArray

from ..types.exceptions import InvalidValueError


@attrs.frozen
class Linear:
    """Linear ramp from `initial` to `final`."""

    initial: float = attrs.field(converter=float)
    final: float = attrs.field(converter=float)

    def __call__(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.initial + (self.final - self.initial) * x

    def __str__(self) -> str:
        return f"linear({self.initial}, {self.final})"


@attrs.frozen
class Exponential:
    """Exponential ramp from `initial` to `final` with asymptote `zero`.

    The value at fraction x is `zero + (initial - zero) * r**x` with
    `r = (final - zero) / (initial - zero)`.
    """

    initial: float = attrs.field(converter=float)
    final: float = attrs.field(converter=float)
    zero: float = attrs.field(default=0.0, converter=float)

    def __attrs_post_init__(self):
        start = self.initial - self.zero
        stop = self.final - self.zero
        if start == 0 or stop == 0 or (start > 0) != (stop > 0):
            raise InvalidValueError(
                f"Initial value {self.initial} and final value {self.final} must be "
                f"strictly on the same side of the asymptote {self.zero}"
            )

    def __call__(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        ratio = (self.final - self.zero) / (self.initial - self.zero)
        return self.zero + (self.initial - self.zero) * np.power(ratio, x)

    def __str__(self) -> str:
        return f"exponential({self.initial}, {self.final}, zero={self.zero})"


@attrs.frozen
class Sine:
    """Sine wave with `cycles` periods over the duration of the ramp."""

    amplitude: float = attrs.field(converter=float)
    cycles: float = attrs.field(converter=float)
    phase: float = attrs.field(default=0.0, converter=float)
    offset: float = attrs.field(default=0.0, converter=float)

    def __call__(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.offset + self.amplitude * np.sin(
            2 * np.pi * self.cycles * x + self.phase
        )

    def __str__(self) -> str:
        return f"sine({self.amplitude}, {self.cycles} cycles)"


@attrs.frozen
class SineRamp:
    """Ramp from `initial` to `final` following a squared sine.

    The ramp starts and stops with zero slope.
    """

    initial: float = attrs.field(converter=float)
    final: float = attrs.field(converter=float)

    def __call__(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.initial + (self.final - self.initial) * np.sin(np.pi * x / 2) ** 2

    def __str__(self) -> str:
        return f"sine_ramp({self.initial}, {self.final})"


@attrs.frozen
class Sine4Ramp:
    """Ramp from `initial` to `final` following a sine to the fourth power."""

    initial: float = attrs.field(converter=float)
    final: float = attrs.field(converter=float)

    def __call__(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.initial + (self.final - self.initial) * np.sin(np.pi * x / 2) ** 4

    def __str__(self) -> str:
        return f"sine4_ramp({self.initial}, {self.final})"


@attrs.frozen
class PiecewiseAccel:
    """Ramp with constant acceleration then constant deceleration."""

    initial: float = attrs.field(converter=float)
    final: float = attrs.field(converter=float)

    def __call__(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        delta = self.final - self.initial
        return np.where(
            x < 0.5,
            self.initial + 2 * delta * x**2,
            self.final - 2 * delta * (1 - x) ** 2,
        )

    def __str__(self) -> str:
        return f"piecewise_accel({self.initial}, {self.final})"


def linear(initial: float, final: float) -> Linear:
    return Linear(initial, final)


def exponential(initial: float, final: float, zero: float = 0.0) -> Exponential:
    return Exponential(initial, final, zero)


def sine(
    amplitude: float, cycles: float, phase: float = 0.0, offset: float = 0.0
) -> Sine:
    return Sine(amplitude, cycles, phase, offset)


def sine_ramp(initial: float, final: float) -> SineRamp:
    return SineRamp(initial, final)


def sine4_ramp(initial: float, final: float) -> Sine4Ramp:
    return Sine4Ramp(initial, final)


def piecewise_accel(initial: float, final: float) -> PiecewiseAccel:
    return PiecewiseAccel(initial, final)
